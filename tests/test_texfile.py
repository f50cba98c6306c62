import struct

import numpy as np
import pytest

from ff7scene.errors import EncoderInvariantError
from ff7scene.model import Clut, IndexedTexture, TextureRegion, TimImage, clut_color
from ff7scene.texfile import TEX_HEADER_SIZE, build_tex_file, build_tex_header, palette_bytes, resample_page


def texture(width, height, pixels, colors=(0x0000, 0x001F), clut_h=1):
    clut = Clut(0, 0, 480, len(colors) // clut_h, clut_h, [clut_color(c) for c in colors])
    image = TimImage(12 + len(pixels), 384, 0, width // 2, height, width, height)
    return IndexedTexture(0x10, 9, 8, True, clut, image, memoryview(bytes(pixels)))


def test_header_constants():
    hdr = build_tex_header(16, 256, 128, num_palettes=3)
    assert len(hdr) == TEX_HEADER_SIZE

    def u32(ofs):
        return struct.unpack_from("<I", hdr, ofs)[0]

    assert u32(0x00) == 1
    assert u32(0x30) == 3
    assert u32(0x34) == 16
    assert (u32(0x3C), u32(0x40)) == (256, 128)
    assert u32(0x4C) == 1
    assert u32(0x58) == 16
    assert u32(0x64) == 8
    assert u32(0xC4) == 0xFF


def test_palette_is_bgra_and_padded():
    tex = texture(2, 1, [0, 1], colors=(0x001F, 0x03E0, 0x7C00, 0x0000), clut_h=2)
    assert palette_bytes(tex, 0) == bytes([0, 0, 248, 255, 0, 248, 0, 255])
    assert palette_bytes(tex, 1) == bytes([248, 0, 0, 255, 0, 0, 0, 0])
    # palette 2 does not exist: opaque black
    assert palette_bytes(tex, 2) == bytes([0, 0, 0, 255]) * 2


def test_region_resample_repeats_last_row_and_column():
    pixels = np.arange(16, dtype=np.uint8).reshape(4, 4)
    tex = texture(4, 4, pixels.tobytes())
    page = resample_page(tex, TextureRegion(1, 1, 2, 2), 4, 4)
    assert page.tolist() == [
        [5, 6, 6, 6],
        [9, 10, 10, 10],
        [9, 10, 10, 10],
        [9, 10, 10, 10],
    ]


def test_region_outside_texture_is_zero():
    tex = texture(2, 2, [1, 2, 3, 4])
    page = resample_page(tex, TextureRegion(1, 0, 4, 4), 3, 3)
    assert page.tolist() == [[2, 0, 0], [4, 0, 0], [0, 0, 0]]


def test_unregioned_copy_is_top_left():
    tex = texture(2, 2, [1, 2, 3, 4])
    page = resample_page(tex, None, 3, 3)
    assert page.tolist() == [[1, 2, 0], [3, 4, 0], [0, 0, 0]]


def test_degenerate_region_raises():
    with pytest.raises(EncoderInvariantError):
        resample_page(texture(2, 2, [0] * 4), TextureRegion(0, 0, 0, 4), 4, 4)


def test_missing_texture_writes_blank_page():
    data = build_tex_file(None, 0, None, 256, 256)
    assert len(data) == TEX_HEADER_SIZE + 256 * 4 + 256 * 256
    assert data[TEX_HEADER_SIZE:] == bytes(256 * 4 + 256 * 256)


def test_full_file_layout():
    tex = texture(2, 2, [1, 0, 0, 1])
    data = build_tex_file(tex, 0, TextureRegion(0, 0, 2, 2), 4, 4)
    assert len(data) == TEX_HEADER_SIZE + 2 * 4 + 16
    assert data[-16:] == bytes([1, 0, 0, 0, 0, 1, 1, 1, 0, 1, 1, 1, 0, 1, 1, 1])
