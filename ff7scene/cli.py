#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from .config import DecodeOptions
from .exporter import BattleLocationExporter
from .model import NamedFile, SceneData
from .scene import decode_scene
from .texture import decode_all_palettes, write_png
from .wizard import AutoPacker, ExportWizard, decisions_from_json


def build_options(args: argparse.Namespace) -> DecodeOptions:
    return DecodeOptions(base_page_x=args.base_page_x).with_modes(
        quad_mode=args.quad_uv_mode, tri_mode=args.tri_uv_mode, uv_shift=args.uv_shift
    )


def load_scene(path: Path) -> SceneData:
    scene = decode_scene(path.read_bytes())
    for err in scene.errors:
        print(f"[!] {path.name}: {err}")
    return scene


def write_files(out_dir: Path, files: List[NamedFile]) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for f in files:
        (out_dir / f.name).write_bytes(f.data)


def cmd_info(args: argparse.Namespace) -> int:
    scene = load_scene(args.scene)
    if scene.header is None:
        return 1
    print(f"[scene] sections={scene.header.section_count} size=0x{args.scene.stat().st_size:X}")
    for s in scene.sections:
        print(f"[scene] section[{s.index}] off=0x{s.offset:X} size=0x{s.size:X} kind={s.kind.value}")
    if scene.texture is not None:
        img = scene.texture.image
        pals = scene.texture.clut.height if scene.texture.clut else 0
        print(f"[scene] texture {img.width}x{img.height} bpp={scene.texture.bpp} palettes={pals}")
    return 0 if scene.ok else 1


def cmd_convert(args: argparse.Namespace) -> int:
    scene = load_scene(args.scene)
    if not scene.ok:
        return 1
    options = build_options(args)

    if args.previews and scene.texture is not None:
        for i, pixels in enumerate(decode_all_palettes(scene.texture)):
            if pixels is not None:
                write_png(args.output_dir / "preview" / f"palette_{i:02d}.png", pixels)

    files: Optional[List[NamedFile]]
    if args.legacy:
        files = BattleLocationExporter(scene, args.prefix, options).export_all()
    else:
        if args.decisions is not None:
            decide = decisions_from_json(json.loads(args.decisions.read_text(encoding="utf-8")))
        else:
            decide = AutoPacker(options, duplicate=args.duplicate)
        files = ExportWizard(scene, args.prefix, options).run(decide)

    if files is None:
        print("[!] export cancelled; nothing written")
        return 1
    write_files(args.output_dir, files)
    print(f"Wrote: {args.output_dir} ({len(files)} files)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Convert PSX battle scenes to PC battle location files.")
    ap.add_argument("--verbose", "-v", action="store_true", help="enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="print the section table")
    info.add_argument("scene", type=Path)
    info.set_defaults(func=cmd_info)

    conv = sub.add_parser("convert", help="write skeleton, TEX and P files")
    conv.add_argument("scene", type=Path)
    conv.add_argument("output_dir", type=Path)
    conv.add_argument("--prefix", default="XX", help="two-letter file prefix (default: XX)")
    mode = conv.add_mutually_exclusive_group()
    mode.add_argument("--auto", action="store_true", help="place fixed-size blocks automatically (default)")
    mode.add_argument("--decisions", type=Path, help="JSON list with one region decision per section")
    mode.add_argument("--legacy", action="store_true", help="one texture page per palette, no regions")
    conv.add_argument("--duplicate", action="append", default=[], help="section id to duplicate (auto mode)")
    conv.add_argument("--previews", action="store_true", help="also write per-palette PNG previews")
    conv.add_argument("--base-page-x", type=int, default=6)
    conv.add_argument("--quad-uv-mode", type=int, default=None, choices=range(6))
    conv.add_argument("--tri-uv-mode", type=int, default=None, choices=range(6))
    conv.add_argument("--uv-shift", type=int, default=None)
    conv.set_defaults(func=cmd_convert)

    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except Exception as e:
        print(f"[!] Failed: {getattr(args, 'scene', '')} ({e})")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
