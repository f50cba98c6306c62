"""
PC .TEX writer for 8-bit paletted pages.

  header[0xEC]                     # fixed constants, see build_tex_header
  palette[colors_per_palette]      # u8 b, g, r, a
  pixels[width * height]           # u8 palette index
"""

from __future__ import annotations

import logging
import struct
from typing import Optional

import numpy as np

from .errors import EncoderInvariantError
from .model import IndexedTexture, TextureRegion

log = logging.getLogger(__name__)

TEX_HEADER_SIZE = 0xEC
DEFAULT_COLORS = 256
MISSING_COLOR = (0, 0, 0, 255)

# (offset, value) pairs that never change; offsets not listed are zero.
_TEX_CONSTANTS = (
    (0x00, 1),     # version
    (0x10, 3),
    (0x14, 4),     # min bits per color
    (0x18, 8),     # max bits per color
    (0x20, 8),     # max alpha bits
    (0x24, 8),     # min bpp
    (0x28, 0x20),  # max bpp
    (0x38, 8),     # bit depth
    (0x4C, 1),     # palette flag
    (0x50, 8),     # bits per index
    (0x64, 8),     # bits per pixel
    (0x68, 1),     # bytes per pixel
    (0xC4, 0xFF),  # reference alpha
    (0xC8, 4),
    (0xCC, 1),
)


def build_tex_header(colors_per_palette: int, width: int, height: int, num_palettes: int = 1) -> bytearray:
    hdr = bytearray(TEX_HEADER_SIZE)
    for ofs, value in _TEX_CONSTANTS:
        struct.pack_into("<I", hdr, ofs, value)
    struct.pack_into("<I", hdr, 0x30, num_palettes)
    struct.pack_into("<I", hdr, 0x34, colors_per_palette)
    struct.pack_into("<I", hdr, 0x3C, width)
    struct.pack_into("<I", hdr, 0x40, height)
    struct.pack_into("<I", hdr, 0x58, colors_per_palette)  # palette size
    struct.pack_into("<I", hdr, 0x5C, colors_per_palette)
    return hdr


def colors_per_palette(texture: Optional[IndexedTexture]) -> int:
    if texture is None or texture.clut is None:
        return DEFAULT_COLORS
    return texture.clut.width


def palette_bytes(texture: Optional[IndexedTexture], palette_index: int) -> bytes:
    count = colors_per_palette(texture)
    if texture is None or texture.clut is None:
        return bytes(count * 4)
    colors = texture.clut.colors
    start = palette_index * count
    out = bytearray()
    for i in range(count):
        j = start + i
        r, g, b, a = colors[j] if 0 <= j < len(colors) else MISSING_COLOR
        out += bytes((b, g, r, a))
    return bytes(out)


def _source(texture: Optional[IndexedTexture]) -> np.ndarray:
    if texture is None or texture.pixel_data is None:
        return np.zeros(0, dtype=np.uint8)
    return np.frombuffer(texture.pixel_data, dtype=np.uint8)


def resample_page(
    texture: Optional[IndexedTexture],
    region: Optional[TextureRegion],
    width: int,
    height: int,
) -> np.ndarray:
    """
    Copy raw index bytes into a ``(height, width)`` page.

    With a region, destination pixels past the region's extent repeat its last
    column/row. Without one, the source is copied 1:1 into the top-left corner.
    Source pixels outside the image or past the pixel data stay 0.
    """

    page = np.zeros((height, width), dtype=np.uint8)
    src = _source(texture)
    if src.size == 0:
        return page

    image = texture.image  # type: ignore[union-attr]
    stride = texture.row_stride  # type: ignore[union-attr]

    if region is not None:
        if region.width <= 0 or region.height <= 0:
            raise EncoderInvariantError(f"degenerate texture region: {region}")
        xs = region.x + np.minimum(np.arange(width), region.width - 1)
        ys = region.y + np.minimum(np.arange(height), region.height - 1)
    else:
        xs = np.arange(width)
        ys = np.arange(height)

    sx, sy = np.meshgrid(xs, ys)
    valid = (sx >= 0) & (sx < image.width) & (sy >= 0) & (sy < image.height)
    src_idx = sy * stride + sx
    valid &= src_idx < src.size
    page[valid] = src[src_idx[valid]]
    return page


def build_tex_file(
    texture: Optional[IndexedTexture],
    palette_index: int,
    region: Optional[TextureRegion],
    width: int = 256,
    height: int = 256,
    num_palettes: int = 1,
) -> bytes:
    if texture is None:
        log.warning("no source texture; writing a blank %dx%d page", width, height)
    elif texture.bpp != 8:
        log.warning("TEX export expects 8bpp source textures (got %d bpp)", texture.bpp)
    count = colors_per_palette(texture)
    out = build_tex_header(count, width, height, num_palettes)
    out += palette_bytes(texture, palette_index)
    out += resample_page(texture, region, width, height).tobytes()
    return bytes(out)
