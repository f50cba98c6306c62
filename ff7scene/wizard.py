"""
Export orchestration: walks the exportable sections, asks a decision source what
texture page each one should use, then hands the result to the exporter.

The decision source is any callable ``(SectionPrompt) -> SectionDecision``. A UI
blocks inside it until the user answers; scripted and automatic sources answer
immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DEFAULT_OPTIONS, DecodeOptions
from .exporter import BattleLocationExporter
from .model import (
    DuplicateRegionConfig,
    ExportSection,
    NamedFile,
    NewRegionConfig,
    RegionConfig,
    ReuseRegionConfig,
    SceneData,
    TextureRegion,
    TextureSlot,
)
from .regions import (
    UVPolygon,
    auto_place_region,
    clamp_region,
    extract_uv_polygons,
    find_matching_slot,
    suggest_region,
)
from .sections import build_section_list
from .texture import decode_to_pixels

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewRegion:
    region: TextureRegion
    duplicate: bool = False


@dataclass(frozen=True)
class ReuseExisting:
    tex_index: int
    duplicate: bool = False


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


SKIP = Skip()
CANCEL = Cancel()

SectionDecision = Union[NewRegion, ReuseExisting, Skip, Cancel]


@dataclass
class SectionPrompt:
    section: ExportSection
    position: int
    total: int
    title: str
    uv_polygons: List[UVPolygon]
    suggested_region: Optional[TextureRegion]
    matching_tex_index: Optional[int]
    existing_slots: Tuple[TextureSlot, ...]
    preview: np.ndarray
    texture_size: Tuple[int, int]


DecisionSource = Callable[[SectionPrompt], SectionDecision]


@dataclass
class ExportPlan:
    sections: List[ExportSection] = field(default_factory=list)
    configs: List[RegionConfig] = field(default_factory=list)
    slots: List[TextureSlot] = field(default_factory=list)


class ExportWizard:
    def __init__(self, scene: SceneData, prefix: Optional[str], options: DecodeOptions = DEFAULT_OPTIONS):
        self.scene = scene
        self.prefix = prefix
        self.options = options

    def texture_size(self) -> Tuple[int, int]:
        tex = self.scene.texture
        if tex is None:
            return 256, 256
        return tex.image.width or 256, tex.image.height or 256

    def _title(self, section: ExportSection, i: int, total: int, n_slots: int) -> str:
        title = f"{section.name} ({i + 1}/{total})"
        if n_slots >= self.options.texture_warn_at:
            title += f" [{n_slots}/{self.options.texture_limit} textures]"
            log.warning("%s: %d of %d texture pages used", section.name, n_slots, self.options.texture_limit)
        return title

    def plan(self, decide: DecisionSource) -> Optional[ExportPlan]:
        """
        Run the per-section loop. Returns None when there is nothing to export or
        the decision source cancels; nothing from a cancelled run is kept.
        """

        sections = build_section_list(self.scene)
        if not sections:
            log.warning("no sections to export")
            return None

        configs: List[RegionConfig] = []
        slots: List[TextureSlot] = []
        duplicates: List[ExportSection] = []
        next_tex_index = 0

        for i, section in enumerate(sections):
            preview = decode_to_pixels(self.scene.texture, section.palette)
            if preview is None:
                log.warning("failed to decode texture for section %s; skipping", section.name)
                configs.append(NewRegionConfig(section.section_id, None, None))
                continue

            polygons = extract_uv_polygons(section.geometry, self.options)
            suggested = suggest_region(polygons, self.options)
            prompt = SectionPrompt(
                section=section,
                position=i,
                total=len(sections),
                title=self._title(section, i, len(sections), len(slots)),
                uv_polygons=polygons,
                suggested_region=suggested,
                matching_tex_index=find_matching_slot(suggested, section.palette, slots),
                existing_slots=tuple(slots),
                preview=preview,
                texture_size=self.texture_size(),
            )
            decision = decide(prompt)

            if isinstance(decision, Cancel):
                log.info("export cancelled at %s", section.name)
                return None

            base: Union[NewRegionConfig, ReuseRegionConfig]
            if isinstance(decision, Skip):
                configs.append(NewRegionConfig(section.section_id, None, None))
                continue
            if isinstance(decision, ReuseExisting):
                if all(s.tex_index != decision.tex_index for s in slots):
                    raise ValueError(f"{section.name}: no texture page {decision.tex_index} to reuse")
                base = ReuseRegionConfig(section.section_id, decision.tex_index)
            elif isinstance(decision, NewRegion):
                if decision.region is None:
                    raise ValueError(f"{section.name}: a new texture page needs a region")
                tex_w, tex_h = self.texture_size()
                region = clamp_region(decision.region, tex_w, tex_h, self.options)
                tex_index = next_tex_index
                next_tex_index += 1
                slots.append(TextureSlot(tex_index, section.name, region, section.palette))
                base = NewRegionConfig(section.section_id, tex_index, region)
            else:
                raise TypeError(f"unknown section decision: {decision!r}")
            configs.append(base)

            if decision.duplicate:
                dup_id = f"{section.section_id}-dup-{len(duplicates) + 1}"
                duplicates.append(replace(section, section_id=dup_id, name=f"{section.name} (Duplicate)"))
                configs.append(DuplicateRegionConfig(dup_id, section.section_id, base))

        return ExportPlan(sections=sections + duplicates, configs=configs, slots=slots)

    def export(self, plan: ExportPlan) -> List[NamedFile]:
        exporter = BattleLocationExporter(self.scene, self.prefix, self.options)
        return exporter.export_with_regions(plan.configs, plan.slots, plan.sections)

    def run(self, decide: DecisionSource) -> Optional[List[NamedFile]]:
        plan = self.plan(decide)
        if plan is None:
            return None
        return self.export(plan)


class AutoPacker:
    """
    Decision source for unattended exports: each section gets the fixed-size block
    that best covers its UVs, reusing an existing page when one already holds the
    same block with the same palette.
    """

    def __init__(self, options: DecodeOptions = DEFAULT_OPTIONS, duplicate: Iterable[str] = ()):
        self.options = options
        self.duplicate = set(duplicate)

    def __call__(self, prompt: SectionPrompt) -> SectionDecision:
        tex_w, tex_h = prompt.texture_size
        region = auto_place_region(prompt.uv_polygons, tex_w, tex_h, self.options)
        if region is None:
            return SKIP
        dup = prompt.section.section_id in self.duplicate
        match = find_matching_slot(region, prompt.section.palette, prompt.existing_slots)
        if match is not None:
            return ReuseExisting(match, duplicate=dup)
        return NewRegion(region, duplicate=dup)


class ScriptedDecisions:
    """Replays a pre-recorded list of decisions, one per section."""

    def __init__(self, decisions: Sequence[SectionDecision]):
        self._it: Iterator[SectionDecision] = iter(decisions)

    def __call__(self, prompt: SectionPrompt) -> SectionDecision:
        try:
            return next(self._it)
        except StopIteration:
            raise ValueError(f"no decision recorded for {prompt.section.name}") from None


def _region_from_json(obj) -> TextureRegion:
    if isinstance(obj, dict):
        return TextureRegion(int(obj["x"]), int(obj["y"]), int(obj["width"]), int(obj["height"]))
    x, y, w, h = obj
    return TextureRegion(int(x), int(y), int(w), int(h))


def decision_from_json(obj) -> SectionDecision:
    """
    Accepted shapes:
      "skip" | "cancel"
      {"region": [x, y, w, h] | {"x":..,"y":..,"width":..,"height":..} | null, "duplicate": bool}
      {"reuse": tex_index, "duplicate": bool}
    """

    if isinstance(obj, str):
        if obj == "skip":
            return SKIP
        if obj == "cancel":
            return CANCEL
        raise ValueError(f"unknown decision: {obj!r}")
    if not isinstance(obj, dict):
        raise ValueError(f"decision must be a string or an object: {obj!r}")
    dup = bool(obj.get("duplicate", False))
    if "reuse" in obj:
        return ReuseExisting(int(obj["reuse"]), duplicate=dup)
    if "region" in obj:
        # no selection means the section gets no page
        if obj["region"] is None:
            return SKIP
        return NewRegion(_region_from_json(obj["region"]), duplicate=dup)
    raise ValueError(f"decision needs 'region' or 'reuse': {obj!r}")


def decisions_from_json(items: Iterable) -> ScriptedDecisions:
    return ScriptedDecisions([decision_from_json(o) for o in items])
