#!/usr/bin/env python3
# Battle scene dumper: section table, per-section geometry stats, texture header.
# Prints what the decoder sees; no export.

from __future__ import annotations

import argparse
from collections import Counter
from pathlib import Path

from ff7scene.config import DEFAULT_OPTIONS
from ff7scene.model import GeometrySection, IndexedTexture, Metadata
from ff7scene.regions import detect_palette, extract_uv_polygons, suggest_region, uv_bounds
from ff7scene.scene import decode_scene
from ff7scene.sections import section_name


def dump_geometry(label: str, g: GeometrySection, max_polys: int) -> None:
    pals = Counter([t.palette_index for t in g.triangles] + [q.palette_index for q in g.quads])
    print(
        f"[geom] {label} verts={g.vertex_count} tris={g.triangle_count} quads={g.quad_count} "
        f"tpx={g.texture_page_x} palettes={dict(sorted(pals.items()))} detected={detect_palette(g)}"
    )
    polys = extract_uv_polygons(g, DEFAULT_OPTIONS)
    bounds = uv_bounds(polys)
    if bounds is not None:
        print(f"[geom]   uv bounds u={bounds[0]}..{bounds[2]} v={bounds[1]}..{bounds[3]} suggest={suggest_region(polys)}")
    for i, t in enumerate(g.triangles[:max_polys]):
        print(f"[geom]   tri[{i}] v={t.vertices} uv={t.stored_uvs} clut=0x{t.clut_word:04X}")
    for i, q in enumerate(g.quads[:max_polys]):
        print(f"[geom]   quad[{i}] v={q.vertices} uv={q.stored_uvs} clut=0x{q.clut_word:04X} flags=0x{q.flags:04X}")


def dump_texture(t: IndexedTexture) -> None:
    img = t.image
    print(f"[tim] bpp={t.bpp} flags=0x{t.flags:X} image=({img.x},{img.y}) {img.width}x{img.height} raw={img.raw_width}x{img.raw_height}")
    print(f"[tim] base page x={t.base_page_x} pixel bytes=0x{len(t.pixel_data or b''):X}")
    if t.clut is not None:
        c = t.clut
        print(f"[tim] clut=({c.x},{c.y}) {c.width}x{c.height} colors={len(c.colors)}")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("path", type=Path)
    ap.add_argument("--polys", type=int, default=0, help="print the first N triangles/quads per section")
    args = ap.parse_args()

    scene = decode_scene(args.path.read_bytes())
    if scene.header is None:
        raise SystemExit(f"cannot read section table: {scene.errors}")

    print(f"[scene] {args.path.name} size=0x{args.path.stat().st_size:X} sections={scene.header.section_count}")
    meshes = {id(g): i for i, g in enumerate(scene.meshes())}
    for s in scene.sections:
        print(f"[scene] section[{s.index}] off=0x{s.offset:X} size=0x{s.size:X} kind={s.kind.value}")
        if isinstance(s.payload, Metadata):
            print(f"[meta] flags=0x{s.payload.flags:X} reserved=0x{s.payload.reserved:X}")
        elif isinstance(s.payload, IndexedTexture):
            dump_texture(s.payload)
        elif isinstance(s.payload, GeometrySection):
            mesh_index = meshes.get(id(s.payload))
            label = section_name(mesh_index) if mesh_index is not None else "(unused)"
            dump_geometry(label, s.payload, args.polys)

    for err in scene.errors:
        print(f"[!] {err}")
    return 0 if scene.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
