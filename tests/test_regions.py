import pytest

from ff7scene.config import DEFAULT_OPTIONS, DecodeOptions, texture_x_offset
from ff7scene.model import GeometrySection, Quad, TextureRegion, TextureSlot, Triangle, Vertex
from ff7scene.regions import (
    auto_place_region,
    clamp_region,
    detect_palette,
    extract_uv_polygons,
    find_matching_slot,
    place_block,
    suggest_region,
    triangle_uvs,
    uv_bounds,
)


def tri(uvs, palette=0):
    return Triangle(vertices=(0, 1, 2), clut_word=(504 + palette) << 6, palette_index=palette, stored_uvs=uvs)


def quad(uvs, palette=0):
    return Quad(
        vertices=(0, 1, 2, 3),
        clut_word=(504 + palette) << 6,
        flags=0,
        palette_index=palette,
        stored_uvs=uvs,
        uv_data=bytes(12),
    )


def geom(triangles=(), quads=(), tpx=6):
    verts = [Vertex(0, 0, 0)] * 4
    return GeometrySection(32, 4, verts, tpx, list(triangles), list(quads))


def test_suggest_region_snaps_to_grid():
    polys = [[(10, 5), (70, 5), (10, 40)]]
    assert suggest_region(polys) == TextureRegion(0, 0, 96, 64)


def test_suggest_region_has_minimum_size():
    assert suggest_region([[(40, 40), (50, 50)]]) == TextureRegion(32, 32, 64, 64)


def test_suggest_region_without_uvs():
    assert suggest_region([]) is None
    assert uv_bounds([]) is None


def test_texture_page_offset():
    assert texture_x_offset(6) == 0
    assert texture_x_offset(8) == 256
    # page 0 means the base page
    assert texture_x_offset(0) == 0
    g = geom([tri(((0, 0), (10, 0), (0, 10)))], tpx=7)
    assert uv_bounds(extract_uv_polygons(g)) == (128, 0, 138, 10)


def test_quad_outline_order():
    g = geom(quads=[quad(((0, 0), (1, 0), (0, 1), (1, 1)))])
    assert extract_uv_polygons(g) == [[(0, 0), (1, 0), (1, 1), (0, 1)]]


def test_uv_shift_and_mapping():
    a = tri(((1, 1), (2, 2), (3, 3)))
    b = tri(((7, 7), (8, 8), (9, 9)))
    g = geom([a, b])
    opts = DEFAULT_OPTIONS.with_modes(tri_mode=5, uv_shift=1)
    assert triangle_uvs(g, 0, opts) == [(9, 9), (8, 8), (7, 7)]
    assert triangle_uvs(g, 1, opts) == [(3, 3), (2, 2), (1, 1)]


def test_invalid_mapping_rejected():
    with pytest.raises(ValueError):
        DecodeOptions(tri_uv_mapping=(0, 0, 1))


def test_place_block_prefers_containment():
    assert place_block(300, 450, 512, 256) == 256


def test_place_block_wide_footprint_minimises_overflow():
    # neither block holds 10..280; start 0 leaves 24 outside, start 256 would leave 246
    assert place_block(10, 280, 512, 256) == 0
    assert place_block(200, 520, 1024, 256) == 256


def test_place_block_clamps_to_texture():
    assert place_block(0, 40, 128, 256) == 0
    assert place_block(500, 510, 512, 256) == 256


def test_auto_place_region():
    polys = [[(300, 10), (450, 100)]]
    assert auto_place_region(polys, 512, 256) == TextureRegion(256, 0, 256, 256)
    assert auto_place_region([], 512, 256) is None


def test_clamp_region_snaps_size():
    assert clamp_region(TextureRegion(200, -4, 100, 50), 256, 256) == TextureRegion(200, 0, 64, 64)
    assert clamp_region(TextureRegion(0, 0, 112, 80), 256, 256) == TextureRegion(0, 0, 128, 96)


def test_detect_palette_majority_then_lowest():
    g = geom([tri(((0, 0),) * 3, 3), tri(((0, 0),) * 3, 1)], [quad(((0, 0),) * 4, 3)])
    assert detect_palette(g) == 3
    g = geom([tri(((0, 0),) * 3, 3), tri(((0, 0),) * 3, 1)])
    assert detect_palette(g) == 1
    assert detect_palette(geom()) == 0


def test_find_matching_slot():
    r = TextureRegion(0, 0, 256, 256)
    slots = [TextureSlot(0, "Ground Plane", r, 1), TextureSlot(1, "Sky Section 0", r, 0)]
    assert find_matching_slot(r, 0, slots) == 1
    assert find_matching_slot(r, 2, slots) is None
    assert find_matching_slot(None, 0, slots) is None
