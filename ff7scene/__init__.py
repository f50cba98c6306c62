from .config import DecodeOptions
from .errors import EncoderInvariantError, SceneDecodeError
from .exporter import BattleLocationExporter, encode
from .model import (
    ExportSection,
    NamedFile,
    SceneData,
    SectionKind,
    SectionRole,
    TextureRegion,
    TextureSlot,
)
from .scene import decode_scene
from .sections import classify
from .texture import decode_to_pixels
from .wizard import CANCEL, SKIP, AutoPacker, ExportWizard, NewRegion, ReuseExisting

__all__ = [
    "AutoPacker",
    "BattleLocationExporter",
    "CANCEL",
    "DecodeOptions",
    "EncoderInvariantError",
    "ExportSection",
    "ExportWizard",
    "NamedFile",
    "NewRegion",
    "ReuseExisting",
    "SKIP",
    "SceneData",
    "SceneDecodeError",
    "SectionKind",
    "SectionRole",
    "TextureRegion",
    "TextureSlot",
    "classify",
    "decode_scene",
    "decode_to_pixels",
    "encode",
]
