from __future__ import annotations

from typing import List

from .model import ExportSection, GeometrySection, SceneData, SectionRole
from .regions import detect_palette

SKY_SECTIONS = 3


def classify(index: int) -> SectionRole:
    """Role of the index-th exportable mesh: ground plane, three sky pieces, then objects."""
    if index == 0:
        return SectionRole.GROUND
    if index <= SKY_SECTIONS:
        return SectionRole.SKY
    return SectionRole.OBJECT


def section_name(index: int) -> str:
    role = classify(index)
    if role is SectionRole.GROUND:
        return "Ground Plane"
    if role is SectionRole.SKY:
        return f"Sky Section {index - 1}"
    return f"Object Section {index - 1 - SKY_SECTIONS}"


def make_section(index: int, geom: GeometrySection) -> ExportSection:
    return ExportSection(
        section_id=f"mesh-{index}",
        index=index,
        role=classify(index),
        name=section_name(index),
        geometry=geom,
        palette=detect_palette(geom),
    )


def build_section_list(scene: SceneData) -> List[ExportSection]:
    return [make_section(i, geom) for i, geom in enumerate(scene.meshes())]
