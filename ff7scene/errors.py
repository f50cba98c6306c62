from __future__ import annotations


class SceneDecodeError(ValueError):
    """Structural problem while decoding a battle scene buffer."""


class EncoderInvariantError(RuntimeError):
    """Raised when the encoder is handed data the planner should never produce."""
