from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

UV = Tuple[int, int]
RGBA = Tuple[int, int, int, int]

CLUT_BASE_ROW = 504  # VRAM row of palette 0 in battle scenes
MAGENTA: RGBA = (255, 0, 255, 255)


class SectionKind(Enum):
    METADATA = "metadata"
    GEOMETRY = "3d_geometry"
    TEXTURE = "tim_texture"


def palette_index_from_clut(clut_word: int) -> int:
    clut_y = (clut_word >> 6) & 0x1FF
    return clut_y - CLUT_BASE_ROW if clut_y >= CLUT_BASE_ROW else 0


def clut_color(word: int) -> RGBA:
    """PSX 15-bit color -> RGBA; pure black is the transparent key."""
    r = (word & 0x1F) << 3
    g = ((word >> 5) & 0x1F) << 3
    b = ((word >> 10) & 0x1F) << 3
    a = 0 if (r == 0 and g == 0 and b == 0) else 255
    return r, g, b, a


@dataclass(frozen=True)
class SectionTable:
    section_count: int
    pointers: Tuple[int, ...]
    sizes: Tuple[int, ...]


@dataclass(frozen=True)
class Metadata:
    flags: int
    reserved: int


@dataclass(frozen=True)
class Vertex:
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class Triangle:
    vertices: Tuple[int, int, int]
    clut_word: int
    palette_index: int
    stored_uvs: Tuple[UV, UV, UV]


@dataclass(frozen=True)
class Quad:
    vertices: Tuple[int, int, int, int]
    clut_word: int
    flags: int
    palette_index: int
    stored_uvs: Tuple[UV, UV, UV, UV]
    uv_data: bytes


@dataclass
class GeometrySection:
    vertex_data_size: int
    vertex_count: int
    vertices: List[Vertex]
    texture_page_x: int
    triangles: List[Triangle]
    quads: List[Quad]

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def quad_count(self) -> int:
        return len(self.quads)


@dataclass
class Clut:
    size: int
    x: int
    y: int
    width: int
    height: int
    colors: List[RGBA]


@dataclass(frozen=True)
class TimImage:
    size: int
    x: int
    y: int
    raw_width: int
    raw_height: int
    width: int
    height: int


@dataclass
class IndexedTexture:
    magic: int
    flags: int
    bpp: int
    has_clut: bool
    clut: Optional[Clut]
    image: TimImage
    pixel_data: Optional[memoryview]

    @property
    def base_page_x(self) -> int:
        return self.image.x // 64

    @property
    def row_stride(self) -> int:
        # bytes per VRAM row: raw width is in 16-bit units
        return self.image.raw_width * 2


Payload = Union[Metadata, GeometrySection, IndexedTexture]


@dataclass
class Section:
    index: int
    offset: int
    size: int
    kind: SectionKind
    payload: Payload


@dataclass
class SceneData:
    header: Optional[SectionTable] = None
    sections: List[Section] = field(default_factory=list)
    metadata: Optional[Metadata] = None
    ground_plane: Optional[GeometrySection] = None
    geometry_list: List[GeometrySection] = field(default_factory=list)
    texture: Optional[IndexedTexture] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def meshes(self) -> List[GeometrySection]:
        """Exportable geometry in export order: ground plane first."""
        out: List[GeometrySection] = []
        if self.ground_plane is not None:
            out.append(self.ground_plane)
        out.extend(self.geometry_list)
        return out


@dataclass(frozen=True)
class TextureRegion:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass
class TextureSlot:
    tex_index: int
    name: str
    region: Optional[TextureRegion]
    palette: int


@dataclass(frozen=True)
class NewRegionConfig:
    """A section that got its own texture page (or none, when skipped)."""

    section_id: str
    tex_index: Optional[int]
    region: Optional[TextureRegion]

    is_reuse = False
    is_duplicate = False

    @property
    def skipped(self) -> bool:
        return self.tex_index is None


@dataclass(frozen=True)
class ReuseRegionConfig:
    """A section drawn with a page created for an earlier section."""

    section_id: str
    tex_index: int

    is_reuse = True
    is_duplicate = False
    region = None


@dataclass(frozen=True)
class DuplicateRegionConfig:
    section_id: str
    original_section_id: str
    source: Union[NewRegionConfig, ReuseRegionConfig]

    is_duplicate = True

    @property
    def tex_index(self) -> Optional[int]:
        return self.source.tex_index

    @property
    def region(self) -> Optional[TextureRegion]:
        return self.source.region

    @property
    def is_reuse(self) -> bool:
        return self.source.is_reuse


RegionConfig = Union[NewRegionConfig, ReuseRegionConfig, DuplicateRegionConfig]


@dataclass(frozen=True)
class NamedFile:
    name: str
    data: bytes


class SectionRole(Enum):
    GROUND = "ground"
    SKY = "sky"
    OBJECT = "object"


@dataclass
class ExportSection:
    """One geometry piece queued for export."""

    section_id: str
    index: int
    role: SectionRole
    name: str
    geometry: GeometrySection
    palette: int
