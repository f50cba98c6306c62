"""
Decoder for PSX battle scene files.

Layout (little-endian throughout):

  u32 section_count
  u32 pointers[section_count]      # absolute offsets
  section[0]                       # metadata: u32 flags, u32 reserved
  section[1..]                     # TIM texture when the first u32 is 0x10, else geometry

Section sizes are implied by the next pointer (or EOF for the last section).
"""

from __future__ import annotations

import logging
import struct
from typing import List, Tuple

from .errors import SceneDecodeError
from .model import (
    Clut,
    GeometrySection,
    IndexedTexture,
    Metadata,
    Quad,
    SceneData,
    Section,
    SectionKind,
    SectionTable,
    TimImage,
    Triangle,
    Vertex,
    clut_color,
    palette_index_from_clut,
)
from .reader import Buffer, Reader

log = logging.getLogger(__name__)

TIM_MAGIC = 0x10
BPP_MODES = {0: 4, 1: 8, 2: 16, 3: 24}

VERTEX_SIZE = 8


def _vertex_index(raw: int) -> int:
    # polygon records store byte offsets into the vertex block
    return raw >> 3


def parse_header(r: Reader) -> SectionTable:
    r.seek(0)
    section_count = r.u32()
    pointers = tuple(r.u32() for _ in range(section_count))

    sizes: List[int] = []
    for i in range(section_count):
        next_ptr = pointers[i + 1] if i < section_count - 1 else len(r)
        sizes.append(next_ptr - pointers[i])

    if any(b <= a for a, b in zip(pointers, pointers[1:])):
        log.warning("section pointers are not strictly increasing: %s", [hex(p) for p in pointers])
    return SectionTable(section_count, pointers, tuple(sizes))


def pack_section_table(table: SectionTable) -> bytes:
    """Serialize the fixed-width table that precedes the sections."""
    return struct.pack(f"<I{table.section_count}I", table.section_count, *table.pointers)


def classify_section(r: Reader, index: int, offset: int) -> SectionKind:
    if index == 0:
        return SectionKind.METADATA
    if r.peek_u32(offset) == TIM_MAGIC:
        return SectionKind.TEXTURE
    return SectionKind.GEOMETRY


def parse_section(r: Reader, index: int, offset: int, size: int) -> Section:
    kind = classify_section(r, index, offset)
    r.seek(offset)
    if kind is SectionKind.METADATA:
        payload = parse_metadata(r)
    elif kind is SectionKind.TEXTURE:
        payload = parse_tim(r)
    else:
        payload = parse_geometry(r)
    log.debug("section[%d] off=0x%X size=0x%X kind=%s", index, offset, size, kind.value)
    return Section(index=index, offset=offset, size=size, kind=kind, payload=payload)


def parse_metadata(r: Reader) -> Metadata:
    flags = r.u32()
    reserved = r.u32()
    return Metadata(flags, reserved)


def _read_uv_block(r: Reader) -> Tuple[bytes, Tuple[int, int, int, int]]:
    uv_data = r.bytes(12)
    verts = tuple(_vertex_index(r.u16()) for _ in range(4))
    return uv_data, verts  # type: ignore[return-value]


def _quad_from_uv_block(uv_data: bytes, verts: Tuple[int, int, int, int]) -> Quad:
    clut_word = (uv_data[3] << 8) | uv_data[2]
    return Quad(
        vertices=verts,
        clut_word=clut_word,
        flags=(uv_data[11] << 8) | uv_data[10],
        palette_index=palette_index_from_clut(clut_word),
        stored_uvs=(
            (uv_data[0], uv_data[1]),
            (uv_data[4], uv_data[5]),
            (uv_data[6], uv_data[7]),
            (uv_data[8], uv_data[9]),
        ),
        uv_data=uv_data,
    )


def parse_geometry(r: Reader) -> GeometrySection:
    """
    Geometry section:

      u32 vertex_data_size
      vertex[vertex_data_size / 8]   # i16 x, i16 z, i16 y, u16 pad
      u16 tri_count, u16 tpage
      tri[tri_count]                 # 16 bytes
      u16 quad_count, u16 pad
      u16 header_verts[4]            # only when quad_count > 0
      quad[quad_count]               # 12 UV bytes + u16 verts[4]

    Quad records are staggered: the vertex indices of record i go with the UV
    bytes of record i+1, and the leading header indices go with record 0.
    Records whose indices are all zero are padding and are dropped.
    """

    vertex_data_size = r.u32()
    vertex_count = vertex_data_size // VERTEX_SIZE

    vertices: List[Vertex] = []
    for _ in range(vertex_count):
        x = r.i16()
        z = r.i16()
        y = r.i16()
        r.u16()
        vertices.append(Vertex(x, y, z))

    def in_range(idx: Tuple[int, ...]) -> bool:
        return all(i < vertex_count for i in idx)

    tri_count = r.u16()
    tpage = r.u16()
    texture_page_x = tpage & 0x0F

    triangles: List[Triangle] = []
    for _ in range(tri_count):
        # >> 3 rather than / 8: an unaligned offset lands on the vertex containing it
        idx = (_vertex_index(r.u16()), _vertex_index(r.u16()), _vertex_index(r.u16()))
        r.u16()
        u0 = r.u8()
        v0 = r.u8()
        clut_word = r.u16()
        u1 = r.u8()
        v1 = r.u8()
        u2 = r.u8()
        v2 = r.u8()
        if not in_range(idx):
            continue
        triangles.append(
            Triangle(
                vertices=idx,
                clut_word=clut_word,
                palette_index=palette_index_from_clut(clut_word),
                stored_uvs=((u0, v0), (u1, v1), (u2, v2)),
            )
        )

    quad_count = r.u16()
    r.u16()

    quads: List[Quad] = []
    if quad_count > 0:
        header = tuple(_vertex_index(r.u16()) for _ in range(4))
        records = [_read_uv_block(r) for _ in range(quad_count)]

        if any(header) and in_range(header):
            quads.append(_quad_from_uv_block(records[0][0], header))  # type: ignore[arg-type]

        for (_, verts), (uv_data, _) in zip(records, records[1:]):
            if not any(verts):
                continue
            if in_range(verts):
                quads.append(_quad_from_uv_block(uv_data, verts))

    return GeometrySection(
        vertex_data_size=vertex_data_size,
        vertex_count=vertex_count,
        vertices=vertices,
        texture_page_x=texture_page_x,
        triangles=triangles,
        quads=quads,
    )


def parse_tim(r: Reader) -> IndexedTexture:
    magic = r.u32()
    flags = r.u32()
    bpp = BPP_MODES[flags & 0x3]
    has_clut = bool((flags >> 3) & 1)

    clut = None
    if has_clut:
        clut_size = r.u32()
        cx = r.u16()
        cy = r.u16()
        cw = r.u16()
        ch = r.u16()
        colors = [clut_color(r.u16()) for _ in range(cw * ch)]
        clut = Clut(size=clut_size, x=cx, y=cy, width=cw, height=ch, colors=colors)

    img_size = r.u32()
    ix = r.u16()
    iy = r.u16()
    raw_w = r.u16()
    raw_h = r.u16()

    if bpp == 4:
        width = raw_w * 4
    elif bpp == 8:
        width = raw_w * 2
    else:
        width = raw_w

    pixel_data = r.view(img_size - 12)
    image = TimImage(size=img_size, x=ix, y=iy, raw_width=raw_w, raw_height=raw_h, width=width, height=raw_h)
    return IndexedTexture(
        magic=magic,
        flags=flags,
        bpp=bpp,
        has_clut=has_clut,
        clut=clut,
        image=image,
        pixel_data=pixel_data,
    )


def decode_scene(data: Buffer) -> SceneData:
    """
    Decode a whole scene. Never raises for malformed input: the first structural
    error stops decoding and is recorded in ``errors``; fields assembled so far
    are returned as-is.
    """

    result = SceneData()
    r = Reader(data)
    try:
        result.header = parse_header(r)
        table = result.header
        for i in range(table.section_count):
            result.sections.append(parse_section(r, i, table.pointers[i], table.sizes[i]))

        if result.sections:
            result.metadata = result.sections[0].payload  # type: ignore[assignment]

        for section in result.sections[1:]:
            if section.kind is SectionKind.TEXTURE:
                # last one wins
                result.texture = section.payload  # type: ignore[assignment]
            elif section.index == 1:
                result.ground_plane = section.payload  # type: ignore[assignment]
            else:
                result.geometry_list.append(section.payload)  # type: ignore[arg-type]
    except SceneDecodeError as e:
        log.error("scene decode failed: %s", e)
        result.errors.append(str(e))

    return result
