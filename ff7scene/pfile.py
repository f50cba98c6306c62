"""
PC battle location model ("P file") builder.

File layout (all little-endian):

  header[128]            # 16 i32 counts/flags + 16 reserved i32
  vertex[numVerts]       # f32 x, y, z
  texcoord[numTexCs]     # f32 u, v
  vcolor[numVerts]       # u8 b, g, r, a
  pcolor[numPolys]       # u8 b, g, r, a
  edge[numEdges]         # u16 a, b
  polygon[numPolys]      # 24 bytes
  hundred[numGroups]     # 25 i32 render state
  group[numGroups]       # 14 i32
  bbox                   # i32 0, f32 max xyz, f32 min xyz
  normal_index[numVerts] # i32 identity

Normals are never stored; the game computes them at load time.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple

from .config import DEFAULT_OPTIONS, DecodeOptions, texture_x_offset
from .errors import EncoderInvariantError
from .model import UV, GeometrySection, TextureRegion
from .regions import quad_uvs, triangle_uvs

HEADER_SIZE = 128
POLY_TAG2 = 0x00EAFC0C
VERTEX_COLOR = (255, 255, 255, 255)
POLYGON_COLOR = (128, 128, 128, 255)

# PHundret render state captured from shipped battle locations.
# texID and numVert + 1 are patched in per group.
HUNDRED_TEMPLATE = (
    1, 1, 0x0003860E, 0x00020402, 0, 0, 1, 0, 0, 1, -1, 0, 0,
    5, 6, 2, 0, 0, 0, 0, 0, 0, 0, 0x80, 0,
)
HUNDRED_TEX_ID = 4
HUNDRED_NUM_VERT = 7

_Q4 = Decimal("0.0001")


def _fixed4(value: float) -> str:
    # halves round away from zero, same as Number.prototype.toFixed
    d = Decimal(value).quantize(_Q4, rounding=ROUND_HALF_UP)
    return str(d.copy_abs() if d == 0 else d)


@dataclass
class PPolygon:
    vertices: Tuple[int, int, int]
    edges: Tuple[int, int, int]
    palette_index: int = 0


@dataclass
class PGroup:
    offset_poly: int
    num_poly: int
    num_vert: int
    num_edge: int
    tex_id: int
    poly_type: int = 3
    offset_vert: int = 0
    offset_edge: int = 0
    offset_tex: int = 0
    tex_flag: int = 1


@dataclass
class BoundingBox:
    min_x: float = 0.0
    min_y: float = 0.0
    min_z: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0
    max_z: float = 0.0


@dataclass
class PModel:
    vertices: List[Tuple[float, float, float]] = field(default_factory=list)
    tex_coords: List[Tuple[float, float]] = field(default_factory=list)
    edges: List[Tuple[int, int]] = field(default_factory=list)
    polygons: List[PPolygon] = field(default_factory=list)
    groups: List[PGroup] = field(default_factory=list)
    bbox: BoundingBox = field(default_factory=BoundingBox)


class MeshBuilder:
    """
    Collects triangles for one model piece.

    The PC format has one texcoord per vertex, so a PSX vertex used with two
    different UVs becomes two vertices. Vertices are keyed by position and UV
    rounded to 4 decimals; edges by their unordered vertex pair.
    """

    def __init__(self, geom: GeometrySection, frame: TextureRegion, options: DecodeOptions = DEFAULT_OPTIONS):
        if frame.width <= 0 or frame.height <= 0:
            raise EncoderInvariantError(f"degenerate texture region: {frame}")
        self.geom = geom
        self.frame = frame
        self.options = options
        self.x_off = texture_x_offset(geom.texture_page_x, options)
        self.model = PModel()
        self._vertex_map: Dict[Tuple[str, ...], int] = {}
        self._edge_map: Dict[Tuple[int, int], int] = {}

    def vertex(self, src_index: int, uv: Optional[UV]) -> int:
        if not (0 <= src_index < len(self.geom.vertices)):
            return 0
        src = self.geom.vertices[src_index]
        # PSX Z is PC Y
        x, y, z = src.x, src.z, src.y

        su, sv = uv if uv is not None else (0, 0)
        u = (su + self.x_off - self.frame.x) / self.frame.width
        v = (sv - self.frame.y) / self.frame.height

        key = (_fixed4(x), _fixed4(y), _fixed4(z), _fixed4(u), _fixed4(v))
        idx = self._vertex_map.get(key)
        if idx is not None:
            return idx
        idx = len(self.model.vertices)
        self.model.vertices.append((float(x), float(y), float(z)))
        self.model.tex_coords.append((u, v))
        self._vertex_map[key] = idx
        return idx

    def edge(self, a: int, b: int) -> int:
        key = (a, b) if a < b else (b, a)
        idx = self._edge_map.get(key)
        if idx is None:
            idx = len(self.model.edges)
            self._edge_map[key] = idx
            self.model.edges.append((a, b))
        return idx

    def triangle(self, a: int, b: int, c: int, palette_index: int) -> None:
        edges = (self.edge(a, b), self.edge(b, c), self.edge(c, a))
        self.model.polygons.append(PPolygon((a, b, c), edges, palette_index))

    def add_geometry(self) -> None:
        geom = self.geom
        options = self.options
        for i, tri in enumerate(geom.triangles):
            uvs = triangle_uvs(geom, i, options)
            v = [self.vertex(tri.vertices[k], uvs[k]) for k in range(3)]
            self.triangle(v[0], v[1], v[2], tri.palette_index)

        for i, quad in enumerate(geom.quads):
            uvs = quad_uvs(geom, i, options)
            v = [self.vertex(quad.vertices[k], uvs[k]) for k in range(4)]
            self.triangle(v[0], v[1], v[2], quad.palette_index)
            self.triangle(v[1], v[3], v[2], quad.palette_index)

    def finish(self, groups: List[PGroup]) -> PModel:
        self.model.groups = groups
        self.model.bbox = compute_bounding_box(self.model.vertices)
        return self.model


def single_group(model: PModel, tex_id: int) -> List[PGroup]:
    return [
        PGroup(
            offset_poly=0,
            num_poly=len(model.polygons),
            num_vert=len(model.vertices),
            num_edge=len(model.edges),
            tex_id=tex_id,
        )
    ]


def groups_by_palette(model: PModel) -> List[PGroup]:
    """
    One group per palette, in order of first use. offset_poly is the first polygon
    of the palette; polygons are not reordered.
    """

    by_palette: Dict[int, List[int]] = {}
    for i, poly in enumerate(model.polygons):
        by_palette.setdefault(poly.palette_index, []).append(i)
    if not by_palette:
        return single_group(model, 0)
    return [
        PGroup(
            offset_poly=idx[0],
            num_poly=len(idx),
            num_vert=len(model.vertices),
            num_edge=len(model.edges),
            tex_id=palette,
        )
        for palette, idx in by_palette.items()
    ]


def compute_bounding_box(vertices: List[Tuple[float, float, float]]) -> BoundingBox:
    if not vertices:
        return BoundingBox()
    xs = [v[0] for v in vertices]
    ys = [v[1] for v in vertices]
    zs = [v[2] for v in vertices]
    return BoundingBox(min(xs), min(ys), min(zs), max(xs), max(ys), max(zs))


def build_region_model(
    geom: GeometrySection,
    region: Optional[TextureRegion],
    tex_index: int,
    options: DecodeOptions = DEFAULT_OPTIONS,
) -> PModel:
    """Model whose UVs address a single re-packed texture page."""
    page = options.page_size
    frame = region if region is not None else TextureRegion(0, 0, page, page)
    builder = MeshBuilder(geom, frame, options)
    builder.add_geometry()
    for poly in builder.model.polygons:
        poly.palette_index = 0
    return builder.finish(single_group(builder.model, tex_index))


def build_palette_model(
    geom: GeometrySection,
    texture_width: int,
    texture_height: int,
    options: DecodeOptions = DEFAULT_OPTIONS,
) -> PModel:
    """Model whose UVs address the whole source texture, grouped by palette."""
    builder = MeshBuilder(geom, TextureRegion(0, 0, texture_width, texture_height), options)
    builder.add_geometry()
    return builder.finish(groups_by_palette(builder.model))


def _bgra(c: Tuple[int, int, int, int]) -> bytes:
    r, g, b, a = c
    return bytes((b, g, r, a))


def assemble_pfile(model: PModel) -> bytes:
    n_verts = len(model.vertices)
    n_tex = len(model.tex_coords)
    n_edges = len(model.edges)
    n_polys = len(model.polygons)
    n_groups = len(model.groups)

    out = bytearray()
    out += struct.pack(
        "<16i",
        1,         # version
        1,         # off04
        1,         # vertex colors present
        n_verts,
        0,         # numNormals
        0,         # numXYZ
        n_tex,
        n_verts,   # numNormIdx
        n_edges,
        n_polys,
        0,
        0,
        n_groups,  # numHundreds
        n_groups,
        n_groups,  # mirex_g
        1,
    )
    out += bytes(16 * 4)

    for x, y, z in model.vertices:
        out += struct.pack("<3f", x, y, z)
    for u, v in model.tex_coords:
        out += struct.pack("<2f", u, v)
    out += _bgra(VERTEX_COLOR) * n_verts
    out += _bgra(POLYGON_COLOR) * n_polys
    for a, b in model.edges:
        out += struct.pack("<2H", a, b)
    for poly in model.polygons:
        out += struct.pack("<h3H3H3Hi", 0, *poly.vertices, 0, 0, 0, *poly.edges, POLY_TAG2)

    for g in model.groups:
        hundred = list(HUNDRED_TEMPLATE)
        hundred[HUNDRED_TEX_ID] = g.tex_id
        hundred[HUNDRED_NUM_VERT] = g.num_vert + 1
        out += struct.pack("<25i", *hundred)

    for g in model.groups:
        # edge offset/count are always zero in shipped files
        out += struct.pack(
            "<14i",
            g.poly_type,
            g.offset_poly,
            g.num_poly,
            g.offset_vert,
            g.num_vert,
            0,
            0,
            0,
            0,
            0,
            0,
            g.offset_tex,
            g.tex_flag,
            g.tex_id,
        )

    bb = model.bbox
    out += struct.pack("<i6f", 0, bb.max_x, bb.max_y, bb.max_z, bb.min_x, bb.min_y, bb.min_z)
    out += struct.pack(f"<{n_verts}i", *range(n_verts))
    return bytes(out)
