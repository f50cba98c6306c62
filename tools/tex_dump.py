#!/usr/bin/env python3
# Dump a PC .TEX page (8-bit paletted) to PNG for checking an export.

from __future__ import annotations

import argparse
import struct
from pathlib import Path

from PIL import Image

from ff7scene.texfile import TEX_HEADER_SIZE


def u32le(buf: bytes, off: int) -> int:
    return struct.unpack_from("<I", buf, off)[0]


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("path", type=Path)
    ap.add_argument("--out", type=Path, default=None, help="output PNG (default: <path>.png)")
    args = ap.parse_args()

    buf = args.path.read_bytes()
    if len(buf) < TEX_HEADER_SIZE:
        raise SystemExit("file too small for a TEX header")

    n_palettes = u32le(buf, 0x30)
    n_colors = u32le(buf, 0x34)
    width = u32le(buf, 0x3C)
    height = u32le(buf, 0x40)
    bpp = u32le(buf, 0x64)
    print(f"[tex] {width}x{height} bpp={bpp} palettes={n_palettes} colors={n_colors}")
    if bpp != 8:
        raise SystemExit(f"only 8-bit paletted pages are supported (bpp={bpp})")

    pal_off = TEX_HEADER_SIZE
    pix_off = pal_off + n_colors * 4
    if pix_off + width * height > len(buf):
        raise SystemExit("pixel data out of range")

    rgba = []
    for i in range(n_colors):
        b, g, r, a = buf[pal_off + i * 4 : pal_off + i * 4 + 4]
        rgba.append((r, g, b, a))

    img = Image.frombytes("P", (width, height), buf[pix_off : pix_off + width * height])
    img.putpalette([c for (r, g, b, _) in rgba for c in (r, g, b)])
    img = img.convert("RGBA")
    # putpalette carries no alpha; reapply it per index
    alpha = Image.frombytes("L", (width, height), bytes(rgba[p][3] if p < len(rgba) else 255 for p in buf[pix_off : pix_off + width * height]))
    img.putalpha(alpha)

    out = args.out or args.path.with_suffix(args.path.suffix + ".png")
    img.save(out)
    print(f"Wrote: {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
