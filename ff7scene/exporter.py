"""
Writes a PC battle location file set from a decoded PSX scene.

Files (names lowercased, XX = two-letter prefix):

  XXAA         skeleton
  XXAC, XXAD.. one TEX page per texture slot (or per palette for export_all)
  XXAM, XXAN.. one P model per exported piece
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_OPTIONS, DecodeOptions
from .errors import EncoderInvariantError
from .model import (
    ExportSection,
    NamedFile,
    RegionConfig,
    SceneData,
    TextureRegion,
    TextureSlot,
)
from .pfile import assemble_pfile, build_palette_model, build_region_model
from .sections import build_section_list
from .texfile import build_tex_file

log = logging.getLogger(__name__)

SKELETON_FORMAT = "<13i"
SKELETON_SIZE = struct.calcsize(SKELETON_FORMAT)
LEGACY_PAGE_HEIGHT = 128


def normalize_prefix(prefix: Optional[str]) -> str:
    return (prefix or "XX").upper()[:2].ljust(2, "A")


def model_file_name(prefix: str, index: int) -> str:
    first = ord("A")
    second = ord("M") + index
    while second > ord("Z"):
        second -= 26
        first += 1
    return (prefix + chr(first) + chr(second)).lower()


def texture_file_name(prefix: str, tex_index: int) -> str:
    return (prefix + "A" + chr(ord("C") + tex_index)).lower()


def skeleton_file_name(prefix: str) -> str:
    return (prefix + "AA").lower()


@dataclass(frozen=True)
class Skeleton:
    type: int = 1  # battle location
    unk1: int = 1
    unk2: int = 0
    n_bones: int = 0
    unk3: int = 0
    n_joints: int = 0
    n_textures: int = 0
    n_anims: int = 0
    unk4: int = 0
    n_weapons: int = 0
    n_weapon_anims: int = 0
    unk5: int = 0
    unk6: int = 0

    def pack(self) -> bytes:
        return struct.pack(
            SKELETON_FORMAT,
            self.type,
            self.unk1,
            self.unk2,
            self.n_bones,
            self.unk3,
            self.n_joints,
            self.n_textures,
            self.n_anims,
            self.unk4,
            self.n_weapons,
            self.n_weapon_anims,
            self.unk5,
            self.unk6,
        )


def build_skeleton(n_joints: int, n_textures: int) -> bytes:
    return Skeleton(n_joints=n_joints, n_textures=n_textures).pack()


def parse_skeleton(data: bytes) -> Skeleton:
    if len(data) < SKELETON_SIZE:
        raise ValueError(f"skeleton too small: {len(data)} bytes")
    return Skeleton(*struct.unpack_from(SKELETON_FORMAT, data, 0))


class BattleLocationExporter:
    def __init__(self, scene: SceneData, prefix: Optional[str], options: DecodeOptions = DEFAULT_OPTIONS):
        self.scene = scene
        self.prefix = normalize_prefix(prefix)
        self.options = options

    def _texture_size(self) -> Tuple[int, int]:
        tex = self.scene.texture
        if tex is None:
            return 256, 256
        return tex.image.width or 256, tex.image.height or 256

    def export_all(self) -> List[NamedFile]:
        """
        Whole-texture export: one 256x128 page per palette, UVs normalised by the
        full source texture, model groups split by palette.
        """

        tex = self.scene.texture
        pieces = self.scene.meshes()
        num_palettes = (tex.clut.height if tex is not None and tex.clut is not None else 0) or 1
        tex_w, tex_h = self._texture_size()

        files = [NamedFile(skeleton_file_name(self.prefix), build_skeleton(len(pieces), num_palettes))]
        if tex is not None:
            for p in range(num_palettes):
                data = build_tex_file(
                    tex, p, None, width=self.options.page_size, height=LEGACY_PAGE_HEIGHT, num_palettes=num_palettes
                )
                files.append(NamedFile(texture_file_name(self.prefix, p), data))

        for i, geom in enumerate(pieces):
            model = build_palette_model(geom, tex_w, tex_h, self.options)
            files.append(NamedFile(model_file_name(self.prefix, i), assemble_pfile(model)))
        return files

    def export_with_regions(
        self,
        configs: Sequence[RegionConfig],
        slots: Sequence[TextureSlot],
        sections: Optional[Sequence[ExportSection]] = None,
    ) -> List[NamedFile]:
        pieces = list(sections) if sections is not None else build_section_list(self.scene)
        by_id: Dict[str, RegionConfig] = {}
        for cfg in configs:
            by_id.setdefault(cfg.section_id, cfg)
        slot_by_index = {s.tex_index: s for s in slots}
        # skipped pieces point one past the last page so they never alias a live one
        unused_tex = max(slot_by_index, default=-1) + 1

        files = [NamedFile(skeleton_file_name(self.prefix), build_skeleton(len(pieces), len(slots)))]

        page = self.options.page_size
        for slot in slots:
            data = build_tex_file(self.scene.texture, slot.palette, slot.region, width=page, height=page)
            files.append(NamedFile(texture_file_name(self.prefix, slot.tex_index), data))

        for i, piece in enumerate(pieces):
            cfg = by_id.get(piece.section_id)
            tex_index = i
            region: Optional[TextureRegion] = None
            if cfg is not None:
                tex_index = cfg.tex_index if cfg.tex_index is not None else unused_tex
                if cfg.is_reuse:
                    slot = slot_by_index.get(tex_index)
                    if slot is None:
                        raise EncoderInvariantError(f"{piece.section_id}: reuses unknown texture {tex_index}")
                    region = slot.region
                else:
                    region = cfg.region

            model = build_region_model(piece.geometry, region, tex_index, self.options)
            if not model.polygons:
                log.debug("%s produced no polygons", piece.section_id)
            files.append(NamedFile(model_file_name(self.prefix, i), assemble_pfile(model)))

        if len(slots) > self.options.texture_limit:
            log.warning("%d texture pages exceed the limit of %d", len(slots), self.options.texture_limit)
        return files


def encode(
    scene: SceneData,
    sections: Sequence[ExportSection],
    configs: Sequence[RegionConfig],
    slots: Sequence[TextureSlot],
    prefix: Optional[str],
    options: DecodeOptions = DEFAULT_OPTIONS,
) -> List[NamedFile]:
    return BattleLocationExporter(scene, prefix, options).export_with_regions(configs, slots, sections)
