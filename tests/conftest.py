import struct

import pytest


def clut_word_for_palette(palette: int) -> int:
    # clut_y lives in bits 6..14; palette 0 sits at VRAM row 504
    return (504 + palette) << 6


def pack_geometry(vertices, triangles=(), quads=None, tpage=6):
    """
    vertices: [(x, y, z)] as decoded (stored on disk as x, z, y).
    triangles: [(verts, clut_word, uvs)] with uvs = ((u0, v0), (u1, v1), (u2, v2)).
    quads: (header_verts, [(uv_bytes12, verts)]) or None.
    Vertex indices are given as indices and stored as byte offsets (x8).
    """

    out = bytearray()
    out += struct.pack("<I", len(vertices) * 8)
    for x, y, z in vertices:
        out += struct.pack("<hhhH", x, z, y, 0)

    out += struct.pack("<HH", len(triangles), tpage)
    for verts, clut, uvs in triangles:
        (u0, v0), (u1, v1), (u2, v2) = uvs
        out += struct.pack("<4H", verts[0] * 8, verts[1] * 8, verts[2] * 8, 0)
        out += struct.pack("<BBH4B", u0, v0, clut, u1, v1, u2, v2)

    if not quads:
        out += struct.pack("<HH", 0, 0)
        return bytes(out)

    header, records = quads
    out += struct.pack("<HH", len(records), 0)
    out += struct.pack("<4H", *(v * 8 for v in header))
    for uv_bytes, verts in records:
        assert len(uv_bytes) == 12
        out += bytes(uv_bytes)
        out += struct.pack("<4H", *(v * 8 for v in verts))
    return bytes(out)


def quad_uv_block(uvs, clut_word=0, flags=0) -> bytes:
    (a, b, c, d) = uvs
    return bytes(
        [a[0], a[1], clut_word & 0xFF, clut_word >> 8, b[0], b[1], c[0], c[1], d[0], d[1], flags & 0xFF, flags >> 8]
    )


def pack_tim(width, height, pixels, colors, bpp=8, x=384, y=0, clut_height=1):
    """8bpp (or 4bpp) TIM with one CLUT block. colors are 15-bit PSX words."""
    mode = {4: 0, 8: 1}[bpp]
    raw_w = width // 2 if bpp == 8 else width // 4
    out = bytearray()
    out += struct.pack("<II", 0x10, mode | 0x08)
    clut_w = len(colors) // clut_height
    out += struct.pack("<I4H", 12 + len(colors) * 2, 0, 480, clut_w, clut_height)
    out += struct.pack(f"<{len(colors)}H", *colors)
    out += struct.pack("<I4H", 12 + len(pixels), x, y, raw_w, height)
    out += bytes(pixels)
    return bytes(out)


def pack_scene(*sections, metadata=b"\x00" * 8):
    body = [metadata] + list(sections)
    count = len(body)
    ofs = 4 + count * 4
    pointers = []
    for s in body:
        pointers.append(ofs)
        ofs += len(s)
    return struct.pack(f"<I{count}I", count, *pointers) + b"".join(body)


def simple_geometry(u0=10, v0=5, u1=70, v1=40, palette=0, tpage=6):
    verts = [(0, 0, 0), (100, 0, 0), (0, 0, 100), (100, 0, 100)]
    tri = ((0, 1, 2), clut_word_for_palette(palette), ((u0, v0), (u1, v0), (u0, v1)))
    return pack_geometry(verts, [tri], tpage=tpage)


@pytest.fixture
def geometry_bytes():
    return pack_geometry


@pytest.fixture
def tim_bytes():
    return pack_tim


@pytest.fixture
def scene_bytes():
    return pack_scene


@pytest.fixture
def uv_block():
    return quad_uv_block


@pytest.fixture
def palette_word():
    return clut_word_for_palette


@pytest.fixture
def small_scene():
    """Metadata, ground plane, three sky pieces and one object, plus a 256x256 8bpp texture."""
    pixels = bytes((x + y) % 4 for y in range(256) for x in range(256))
    colors = [0x0000, 0x001F, 0x03E0, 0x7C00]
    tim = pack_tim(256, 256, pixels, colors, x=384)
    geoms = [simple_geometry(palette=p % 2) for p in range(5)]
    return pack_scene(geoms[0], tim, *geoms[1:])
