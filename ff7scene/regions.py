from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_OPTIONS, DecodeOptions, remap, texture_x_offset
from .model import UV, GeometrySection, TextureRegion, TextureSlot

UVPolygon = List[UV]
Bounds = Tuple[int, int, int, int]  # min_u, min_v, max_u, max_v


def triangle_uvs(geom: GeometrySection, i: int, options: DecodeOptions = DEFAULT_OPTIONS) -> List[UV]:
    """Stored UVs for triangle ``i`` after the configured shift and corner order."""
    tris = geom.triangles
    src = tris[(i + options.uv_shift) % len(tris)]
    return remap(src.stored_uvs, options.tri_uv_mapping)


def quad_uvs(geom: GeometrySection, i: int, options: DecodeOptions = DEFAULT_OPTIONS) -> List[UV]:
    quads = geom.quads
    src = quads[(i + options.uv_shift) % len(quads)]
    return remap(src.stored_uvs, options.quad_uv_mapping)


def extract_uv_polygons(geom: GeometrySection, options: DecodeOptions = DEFAULT_OPTIONS) -> List[UVPolygon]:
    """
    UV outlines in source-texture pixels, texture page offset applied.
    Quads come back as closed outlines (corner order 0, 1, 3, 2).
    """

    x_off = texture_x_offset(geom.texture_page_x, options)
    polygons: List[UVPolygon] = []
    for i in range(len(geom.triangles)):
        polygons.append([(u + x_off, v) for u, v in triangle_uvs(geom, i, options)])
    for i in range(len(geom.quads)):
        uvs = [(u + x_off, v) for u, v in quad_uvs(geom, i, options)]
        polygons.append([uvs[0], uvs[1], uvs[3], uvs[2]])
    return polygons


def uv_bounds(polygons: Iterable[Sequence[UV]]) -> Optional[Bounds]:
    points = [uv for poly in polygons for uv in poly]
    if not points:
        return None
    us = [u for u, _ in points]
    vs = [v for _, v in points]
    return min(us), min(vs), max(us), max(vs)


def snap_down(value: float, grid: int) -> int:
    return math.floor(value / grid) * grid


def snap_up(value: float, grid: int) -> int:
    return math.ceil(value / grid) * grid


def snap_to_grid(value: float, grid: int) -> int:
    # nearest grid line, halves rounding up
    return math.floor(value / grid + 0.5) * grid


def suggest_region(polygons: Iterable[Sequence[UV]], options: DecodeOptions = DEFAULT_OPTIONS) -> Optional[TextureRegion]:
    """Grid-snapped bounding box of the UV footprint, at least min_region on each side."""
    bounds = uv_bounds(polygons)
    if bounds is None:
        return None
    min_u, min_v, max_u, max_v = bounds
    g = options.grid
    x = snap_down(min_u, g)
    y = snap_down(min_v, g)
    return TextureRegion(
        x=x,
        y=y,
        width=max(options.min_region, snap_up(max_u, g) - x),
        height=max(options.min_region, snap_up(max_v, g) - y),
    )


def _overflow(start: int, lo: float, hi: float, size: int) -> float:
    return max(0, lo - start) + max(0, hi - (start + size))


def place_block(lo: float, hi: float, extent: int, size: int) -> int:
    """
    Pick a block start along one axis for the footprint ``[lo, hi]``.

    Two candidates: the block holding ``lo`` and the block ending at ``hi``, both
    clamped inside the texture. The first one that holds the whole footprint wins;
    otherwise the one that leaves the least of it outside (first on ties).
    """

    max_start = max(0, extent - size)

    def clamp(v: int) -> int:
        return max(0, min(v, max_start))

    candidates = [clamp(snap_down(lo, size)), clamp(snap_down(hi - size, size))]
    for c in candidates:
        if c <= lo and hi <= c + size:
            return c

    best = candidates[0]
    for c in candidates[1:]:
        if _overflow(c, lo, hi, size) < _overflow(best, lo, hi, size):
            best = c
    return best


def auto_place_region(
    polygons: Iterable[Sequence[UV]],
    tex_w: int,
    tex_h: int,
    options: DecodeOptions = DEFAULT_OPTIONS,
) -> Optional[TextureRegion]:
    """Fixed-size block that best covers the UV footprint."""
    bounds = uv_bounds(polygons)
    if bounds is None:
        return None
    min_u, min_v, max_u, max_v = bounds
    b = options.block_size
    return TextureRegion(
        x=place_block(min_u, max_u, tex_w, b),
        y=place_block(min_v, max_v, tex_h, b),
        width=b,
        height=b,
    )


def clamp_region(region: TextureRegion, tex_w: int, tex_h: int, options: DecodeOptions = DEFAULT_OPTIONS) -> TextureRegion:
    """Clamp a user selection into the texture the way the region selector does."""
    x = max(0, region.x)
    y = max(0, region.y)
    width = region.width
    height = region.height
    if x + width > tex_w:
        width = tex_w - x
    if y + height > tex_h:
        height = tex_h - y
    g = options.grid
    width = max(options.min_region, snap_to_grid(width, g))
    height = max(options.min_region, snap_to_grid(height, g))
    return TextureRegion(x, y, width, height)


def detect_palette(geom: GeometrySection) -> int:
    """Most used palette of the section; ties go to the lowest palette index."""
    counts: Counter = Counter()
    for tri in geom.triangles:
        counts[tri.palette_index] += 1
    for quad in geom.quads:
        counts[quad.palette_index] += 1
    if not counts:
        return 0
    return max(sorted(counts), key=lambda p: counts[p])


def find_matching_slot(
    region: Optional[TextureRegion], palette: int, slots: Iterable[TextureSlot]
) -> Optional[int]:
    if region is None:
        return None
    for slot in slots:
        if slot.region is not None and slot.region == region and slot.palette == palette:
            return slot.tex_index
    return None
