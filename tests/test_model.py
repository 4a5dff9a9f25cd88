"""
Pack model behaviour: soft-reject adds, removal, replacement and the
handle bookkeeping that goes with each of them.

Run with: pytest tests/test_model.py -v
"""

from pathlib import Path

import pytest

from sdeck_tools.model import (
    INCOMPATIBLE_FILES_MESSAGE,
    CandidateFile,
    PackMetadata,
    PackModel,
    UnknownSlotError,
    format_duration,
    format_file_size,
)


@pytest.fixture
def model(catalog, handles) -> PackModel:
    return PackModel(catalog=catalog, handles=handles, allowed_extensions=[".wav"])


# ============================================================================
# ADDING FILES
# ============================================================================

def test_mixed_batch_accepts_only_allowed_extension(model: PackModel, audio_dir: Path):
    result = model.add_files("a.wav", [audio_dir / "kick.wav", audio_dir / "kick.mid"])

    assert [entry.name for entry in result.accepted] == ["kick.wav"]
    assert result.rejected_count == 1
    assert model.entry_names("a.wav") == ["kick.wav"]
    assert model.entry_names("b.wav") == [], "Other slots must stay untouched"
    assert "some files were incompatible" in result.advisory.lower()
    assert result.advisory == INCOMPATIBLE_FILES_MESSAGE


def test_clean_batch_has_no_advisory(model: PackModel, audio_dir: Path):
    result = model.add_files("a.wav", [audio_dir / "kick.wav"])
    assert result.rejected_count == 0
    assert result.advisory == ""


def test_extension_check_is_case_insensitive(model: PackModel, audio_dir: Path):
    result = model.add_files("a.wav", [audio_dir / "LOUD.WAV"])
    assert [entry.name for entry in result.accepted] == ["LOUD.WAV"]


def test_configured_extensions_are_honoured(catalog, handles, audio_dir: Path):
    model = PackModel(catalog=catalog, handles=handles, allowed_extensions=["wav", "MID"])
    assert model.allowed_extensions == (".wav", ".mid")
    result = model.add_files("a.wav", [audio_dir / "kick.mid"])
    assert result.rejected_count == 0
    assert model.entry_names("a.wav") == ["kick.mid"]


def test_duplicate_name_is_ignored(model: PackModel, audio_dir: Path):
    model.add_files("a.wav", [audio_dir / "kick.wav", audio_dir / "snare.wav"])
    before = list(model.slot_entries("a.wav"))

    result = model.add_files("a.wav", [audio_dir / "kick.wav"])

    assert result.accepted == []
    assert result.duplicate_count == 1
    assert result.rejected_count == 0, "Duplicates are not extension rejections"
    assert model.slot_entries("a.wav") == before


def test_duplicates_within_one_batch(model: PackModel):
    batch = [CandidateFile("x.wav", b"one"), CandidateFile("x.wav", b"two")]
    result = model.add_files("a.wav", batch)
    assert [entry.name for entry in result.accepted] == ["x.wav"]
    assert result.duplicate_count == 1
    assert model.slot_entries("a.wav")[0].read_bytes() == b"one"


def test_same_name_allowed_in_different_slots(model: PackModel, audio_dir: Path):
    model.add_files("a.wav", [audio_dir / "kick.wav"])
    model.add_files("b.wav", [audio_dir / "kick.wav"])
    assert model.entry_names("a.wav") == ["kick.wav"]
    assert model.entry_names("b.wav") == ["kick.wav"]


def test_arrival_order_is_preserved(model: PackModel):
    names = ["c.wav", "a.wav", "b.wav"]
    model.add_files("a.wav", [CandidateFile(name, name.encode()) for name in names])
    assert model.entry_names("a.wav") == names


def test_accepted_entries_get_live_handles(model: PackModel, handles, audio_dir: Path):
    result = model.add_files("a.wav", [audio_dir / "kick.wav", audio_dir / "snare.wav"])
    assert handles.live_count == 2
    for entry in result.accepted:
        assert handles.is_live(entry.handle)
        assert entry.handle.path.exists()
        assert entry.handle.path.read_bytes() == entry.read_bytes()
    assert result.accepted[1].size_bytes == len(b"RIFF-snare-longer")


def test_entry_bytes_are_captured_when_added(model: PackModel, audio_dir: Path):
    original = audio_dir / "kick.wav"
    entry = model.add_files("a.wav", [original]).accepted[0]

    original.write_bytes(b"RIFF-kick-edited-afterwards")
    assert entry.read_bytes() == b"RIFF-kick"
    assert entry.size_bytes == len(b"RIFF-kick")

    original.unlink()
    assert entry.read_bytes() == b"RIFF-kick", "Deleting the original must not break the entry"
    assert entry.handle.path.read_bytes() == b"RIFF-kick"


def test_rejected_paths_are_never_read(model: PackModel, tmp_path: Path):
    result = model.add_files("a.wav", [tmp_path / "not-there.mid"])
    assert result.rejected_count == 1
    assert result.accepted == []


def test_unknown_slot_raises(model: PackModel, audio_dir: Path):
    with pytest.raises(UnknownSlotError) as excinfo:
        model.add_files("missing.wav", [audio_dir / "kick.wav"])
    assert isinstance(excinfo.value, KeyError)
    assert "missing.wav" in str(excinfo.value)


# ============================================================================
# REMOVING FILES
# ============================================================================

def test_remove_file_releases_handle_and_keeps_order(model: PackModel, handles):
    model.add_files("a.wav", [CandidateFile(n, b"x") for n in ("1.wav", "2.wav", "3.wav")])
    middle = model.slot_entries("a.wav")[1]

    assert model.remove_file("a.wav", "2.wav") is True

    assert model.entry_names("a.wav") == ["1.wav", "3.wav"]
    assert middle.handle.released
    assert not middle.handle.path.exists()
    assert handles.live_count == 2


def test_remove_file_twice_is_noop(model: PackModel, handles):
    model.add_files("a.wav", [CandidateFile("1.wav", b"x")])
    assert model.remove_file("a.wav", "1.wav") is True
    assert model.remove_file("a.wav", "1.wav") is False
    assert handles.live_count == 0


def test_remove_missing_name_is_noop(model: PackModel):
    model.add_files("a.wav", [CandidateFile("1.wav", b"x")])
    assert model.remove_file("a.wav", "nope.wav") is False
    assert model.entry_names("a.wav") == ["1.wav"]


def test_remove_all_only_touches_one_slot(model: PackModel, handles):
    model.add_files("a.wav", [CandidateFile("1.wav", b"x"), CandidateFile("2.wav", b"y")])
    model.add_files("b.wav", [CandidateFile("3.wav", b"z")])

    assert model.remove_all("a.wav") == 2

    assert model.entry_names("a.wav") == []
    assert model.entry_names("b.wav") == ["3.wav"]
    assert handles.live_count == 1


# ============================================================================
# REPLACING THE MAPPING
# ============================================================================

def test_replace_all_releases_old_handles(model: PackModel, handles):
    model.add_files("a.wav", [CandidateFile("old.wav", b"x")])
    old = model.slot_entries("a.wav")[0]

    donor = PackModel(catalog=model.catalog, handles=handles)
    donor.add_files("b.wav", [CandidateFile("new.wav", b"y")])
    meta = PackMetadata(name="Replaced")

    model.replace_all(donor.mapping, meta)

    assert old.handle.released
    assert model.entry_names("a.wav") == []
    assert model.entry_names("b.wav") == ["new.wav"]
    assert model.metadata.name == "Replaced"
    assert handles.live_count == 1


def test_replace_all_keeps_catalog_slots_and_extras(model: PackModel):
    model.replace_all({"custom.wav": []})
    assert set(model.mapping) == {"a.wav", "b.wav", "custom.wav"}


# ============================================================================
# METADATA
# ============================================================================

def test_metadata_defaults():
    meta = PackMetadata()
    assert meta.name == "SDeckTools Pack"
    assert meta.manifest_version == 2
    assert meta.music is False
    assert meta.ignore == []


def test_metadata_from_dict_keeps_unknown_keys():
    meta = PackMetadata.from_dict({"name": "X", "mappings": {}, "homepage": "https://example.org"})
    assert meta.name == "X"
    assert meta.author == "SDeckTools.com", "Missing fields fall back to defaults"
    assert meta.extra == {"homepage": "https://example.org"}
    assert "mappings" not in meta.to_dict()
    assert meta.to_dict()["homepage"] == "https://example.org"


def test_metadata_field_coercion(model: PackModel):
    model.update_metadata("manifest_version", "3")
    model.update_metadata("music", 1)
    model.update_metadata("ignore", ("a.wav",))
    assert model.metadata.manifest_version == 3
    assert model.metadata.music is True
    assert model.metadata.ignore == ["a.wav"]
    with pytest.raises(ValueError):
        model.update_metadata("mappings", {})


@pytest.mark.parametrize("value", ["foo.wav", b"foo.wav", None, 3])
def test_ignore_rejects_non_list_values(model: PackModel, value):
    model.update_metadata("ignore", ["keep.wav"])
    with pytest.raises(ValueError, match="ignore must be a list"):
        model.update_metadata("ignore", value)
    assert model.metadata.ignore == ["keep.wav"], "A rejected value must leave the field unchanged"


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 B"), (512, "512.00 B"), (1536, "1.50 KB"), (5 * 1024 * 1024, "5.00 MB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


@pytest.mark.parametrize(
    "milliseconds, expected",
    [(0, "0:00"), (999, "0:00"), (5_400, "0:05"), (61_000, "1:01"), (600_000, "10:00"), (-20, "0:00")],
)
def test_format_duration(milliseconds, expected):
    assert format_duration(milliseconds) == expected
