from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import imageio.v2 as imageio
import numpy as np

from .model import MAGENTA, IndexedTexture

log = logging.getLogger(__name__)


def decode_to_pixels(texture: Optional[IndexedTexture], palette_index: int = 0) -> Optional[np.ndarray]:
    """
    Rasterize an indexed TIM texture with one of its palettes.

    Returns a ``(height, width, 4)`` uint8 RGBA array, or None when the texture has
    no CLUT or no pixel data. Indices that miss the CLUT come out magenta; pixels
    whose source byte lies past the end of the pixel data stay (0, 0, 0, 0).
    Only 4bpp and 8bpp are rasterized; other depths give an all-zero image.
    """

    if texture is None or texture.clut is None or texture.pixel_data is None:
        log.warning("invalid TIM data: missing CLUT or pixel data")
        return None

    clut = texture.clut
    image = texture.image
    h, w = image.height, image.width
    out = np.zeros((h, w, 4), dtype=np.uint8)

    if texture.bpp not in (4, 8):
        log.debug("bpp=%d is not rasterized", texture.bpp)
        return out

    src = np.frombuffer(texture.pixel_data, dtype=np.uint8)
    if src.size == 0 or h == 0 or w == 0:
        return out

    colors_per_palette = clut.width
    num_palettes = clut.height
    palette_start = min(palette_index, num_palettes - 1) * colors_per_palette

    ys, xs = np.mgrid[0:h, 0:w]
    stride = texture.row_stride
    if texture.bpp == 8:
        src_idx = ys * stride + xs
    else:
        src_idx = ys * stride + xs // 2
    valid = src_idx < src.size

    raw = src[np.where(valid, src_idx, 0)]
    if texture.bpp == 8:
        color_index = raw.astype(np.int64)
    else:
        color_index = np.where(xs % 2 == 0, raw & 0x0F, (raw >> 4) & 0x0F).astype(np.int64)

    rgba = np.empty((h, w, 4), dtype=np.uint8)
    rgba[:] = MAGENTA
    if colors_per_palette > 0 and clut.colors:
        lut = np.asarray(clut.colors, dtype=np.uint8).reshape(-1, 4)
        clut_idx = palette_start + color_index % colors_per_palette
        found = (clut_idx >= 0) & (clut_idx < len(lut))
        rgba[found] = lut[clut_idx[found]]

    out[valid] = rgba[valid]
    return out


def decode_all_palettes(texture: Optional[IndexedTexture]) -> List[Optional[np.ndarray]]:
    if texture is None or texture.clut is None:
        return [decode_to_pixels(texture)]
    return [decode_to_pixels(texture, i) for i in range(texture.clut.height)]


def write_png(path: Path, pixels: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    imageio.imwrite(path, np.ascontiguousarray(pixels, dtype=np.uint8), format="PNG")
