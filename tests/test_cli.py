import json

import pytest

from ff7scene.cli import main


@pytest.fixture
def scene_file(tmp_path, small_scene):
    path = tmp_path / "stage.lzs"
    path.write_bytes(small_scene)
    return path


def test_info(scene_file, capsys):
    assert main(["info", str(scene_file)]) == 0
    out = capsys.readouterr().out
    assert "[scene] sections=7" in out
    assert "kind=tim_texture" in out
    assert "texture 256x256 bpp=8 palettes=1" in out


def test_convert_auto(scene_file, tmp_path):
    out_dir = tmp_path / "out"
    assert main(["convert", str(scene_file), str(out_dir), "--prefix", "op", "--previews"]) == 0
    names = sorted(p.name for p in out_dir.iterdir() if p.is_file())
    assert names == ["opaa", "opac", "opad", "opam", "opan", "opao", "opap", "opaq"]
    assert (out_dir / "preview" / "palette_00.png").exists()


def test_convert_legacy(scene_file, tmp_path):
    out_dir = tmp_path / "legacy"
    assert main(["convert", str(scene_file), str(out_dir), "--legacy"]) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["xxaa", "xxac", "xxam", "xxan", "xxao", "xxap", "xxaq"]


def test_convert_with_decisions(scene_file, tmp_path):
    decisions = tmp_path / "decisions.json"
    decisions.write_text(json.dumps([{"region": [0, 0, 128, 128]}, {"reuse": 0}, "skip", "skip", {"reuse": 0}]))
    out_dir = tmp_path / "out"
    assert main(["convert", str(scene_file), str(out_dir), "--decisions", str(decisions)]) == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["xxaa", "xxac", "xxam", "xxan", "xxao", "xxap", "xxaq"]


def test_cancel_writes_nothing(scene_file, tmp_path, capsys):
    decisions = tmp_path / "decisions.json"
    decisions.write_text(json.dumps(["cancel"]))
    out_dir = tmp_path / "out"
    assert main(["convert", str(scene_file), str(out_dir), "--decisions", str(decisions)]) == 1
    assert not out_dir.exists()
    assert "cancelled" in capsys.readouterr().out


def test_failure_is_reported(tmp_path, capsys):
    bad = tmp_path / "bad.bin"
    bad.write_bytes(b"\x01\x00")
    assert main(["convert", str(bad), str(tmp_path / "out")]) == 1
    assert "[!]" in capsys.readouterr().out
