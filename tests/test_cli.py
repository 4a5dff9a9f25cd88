"""Command-line interface: JSON reports and exit codes."""

import json
import zipfile
from pathlib import Path

import pytest

from sdeck_tools import cli


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch):
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    monkeypatch.setattr(cli, "APP_DIR", app_dir)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "xdg"))


def run(capsys, *argv) -> tuple:
    code = cli.main(list(argv))
    out = capsys.readouterr().out
    return code, out


def test_slots_lists_bundled_catalog(capsys):
    code, out = run(capsys, "slots")
    assert code == 0
    slots = json.loads(out)
    assert slots[0]["fileName"] == "deck_ui_navigation.wav"


def test_build_archive(capsys, tmp_path: Path, audio_dir: Path):
    output = tmp_path / "out" / "audio_pack.zip"
    code, out = run(
        capsys,
        "build",
        str(output),
        "--add", f"deck_ui_navigation.wav={audio_dir / 'kick.wav'}",
        "--add", f"deck_ui_navigation.wav={audio_dir / 'kick.mid'}",
        "--name", "CLI Pack",
        "--music",
    )
    assert code == 0, out
    report = json.loads(out)
    assert report["accepted"] == ["deck_ui_navigation.wav/kick.wav"]
    assert report["rejected"] == 1
    assert any("incompatible" in w for w in report["warnings"])
    assert report["files"] == 1

    with zipfile.ZipFile(output) as zf:
        manifest = json.loads(zf.read("pack.json"))
        assert zf.read("kick.wav") == b"RIFF-kick"
    assert manifest["name"] == "CLI Pack"
    assert manifest["music"] is True
    assert manifest["mappings"]["deck_ui_navigation.wav"] == ["kick.wav"]


def test_build_from_folder_and_allow_ext(capsys, tmp_path: Path, audio_dir: Path):
    output = tmp_path / "pack.json"
    code, out = run(
        capsys,
        "build",
        str(output),
        "--add", f"deck_ui_navigation.wav={audio_dir}",
        "--allow-ext", "mid",
        "--manifest-only",
    )
    assert code == 0, out
    manifest = json.loads(output.read_text(encoding="utf-8"))
    assert manifest["mappings"]["deck_ui_navigation.wav"] == ["LOUD.WAV", "kick.mid", "kick.wav", "snare.wav"]


def test_rebuild_from_existing_archive(capsys, tmp_path: Path, audio_dir: Path):
    first = tmp_path / "first.zip"
    run(
        capsys,
        "build",
        str(first),
        "--add", f"deck_ui_navigation.wav={audio_dir / 'kick.wav'}",
        "--add", f"deck_ui_navigation.wav={audio_dir / 'snare.wav'}",
        "--add", f"deck_ui_default_activation.wav={audio_dir / 'kick.wav'}",
    )
    second = tmp_path / "second.zip"
    code, out = run(
        capsys,
        "build",
        str(second),
        "--from", str(first),
        "--remove", "deck_ui_navigation.wav=kick.wav",
        "--remove", "deck_ui_navigation.wav=ghost.wav",
        "--clear", "deck_ui_default_activation.wav",
        "--version", "v2.0",
    )
    assert code == 0, out
    report = json.loads(out)
    assert report["removed"] == 2
    assert report["warnings"] == ["ghost.wav is not in deck_ui_navigation.wav"]
    assert report["dropped"] == []

    code, out = run(capsys, "inspect", str(second))
    assert code == 0
    summary = json.loads(out)
    assert summary["mappings"]["deck_ui_navigation.wav"] == ["snare.wav"]
    assert summary["mappings"]["deck_ui_default_activation.wav"] == []
    assert summary["metadata"]["version"] == "v2.0"
    assert summary["unknown_slots"] == []


def test_inspect_missing_manifest(capsys, tmp_path: Path):
    archive = tmp_path / "bad.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("kick.wav", b"x")
    code, out = run(capsys, "inspect", str(archive))
    assert code == 1
    assert out.strip() == "Error: Invalid ZIP file: pack.json not found."


def test_unknown_slot_is_an_error(capsys, tmp_path: Path, audio_dir: Path):
    code, out = run(capsys, "build", str(tmp_path / "x.zip"), "--add", f"nope.wav={audio_dir / 'kick.wav'}")
    assert code == 1
    assert "Unknown slot: nope.wav" in out
    assert not (tmp_path / "x.zip").exists()


def test_bad_pair_syntax(capsys, tmp_path: Path):
    code, out = run(capsys, "build", str(tmp_path / "x.zip"), "--remove", "justaslot")
    assert code == 1
    assert "SLOT=VALUE" in out


def test_missing_input_file_is_a_warning(capsys, tmp_path: Path):
    code, out = run(capsys, "build", str(tmp_path / "x.zip"), "--add", f"deck_ui_navigation.wav={tmp_path / 'none.wav'}")
    assert code == 0
    assert json.loads(out)["warnings"][0].startswith("File not found")


def test_custom_catalog(capsys, tmp_path: Path):
    path = tmp_path / "slots.json"
    path.write_text(json.dumps([{"fileName": "only.wav"}]), encoding="utf-8")
    code, out = run(capsys, "slots", "--catalog", str(path))
    assert code == 0
    assert [s["fileName"] for s in json.loads(out)] == ["only.wav"]


def test_broken_catalog(capsys, tmp_path: Path):
    code, out = run(capsys, "slots", "--catalog", str(tmp_path / "missing.json"))
    assert code == 1
    assert out.startswith("Error: could not load slot catalog")


@pytest.mark.parametrize("kind", ["manifest_crc", "member_method"])
def test_inspect_damaged_archive(capsys, tmp_path: Path, damaged_archive, kind):
    archive = tmp_path / "bad.zip"
    archive.write_bytes(damaged_archive(kind))
    code, out = run(capsys, "inspect", str(archive))
    assert code == 1
    assert out.startswith("Error: Invalid ZIP file")


def test_build_from_damaged_archive(capsys, tmp_path: Path, damaged_archive):
    archive = tmp_path / "bad.zip"
    archive.write_bytes(damaged_archive("member_deflate"))
    code, out = run(capsys, "build", str(tmp_path / "out.zip"), "--from", str(archive))
    assert code == 1
    assert out.startswith("Error: Invalid ZIP file")
    assert not (tmp_path / "out.zip").exists()
