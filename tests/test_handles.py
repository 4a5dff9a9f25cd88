"""Playback handle table: spooling, exactly-once release and cleanup."""

from pathlib import Path

import pytest

from sdeck_tools.handles import HandleError, HandleTable, MemorySource


def test_create_spools_a_private_copy(handles: HandleTable):
    handle = handles.create("my kick.wav", MemorySource(b"RIFF"))

    assert handle.path.exists()
    assert handle.path.read_bytes() == b"RIFF"
    assert " " not in handle.path.name
    assert handle.uri.startswith("file://")

    handles.release(handle)
    assert not handle.path.exists(), "Releasing a handle removes its spooled copy"


def test_handles_with_same_name_do_not_collide(handles: HandleTable):
    first = handles.create("x.wav", MemorySource(b"1"))
    second = handles.create("x.wav", MemorySource(b"2"))
    assert first.path != second.path
    assert first.path.read_bytes() == b"1"
    assert second.path.read_bytes() == b"2"
    assert handles.live_count == 2


def test_release_twice_raises(handles: HandleTable):
    handle = handles.create("x.wav", MemorySource(b"1"))
    handles.release(handle)
    assert handle.released
    assert not handles.is_live(handle)
    with pytest.raises(HandleError, match="already released"):
        handles.release(handle)


def test_release_from_other_table_raises(handles: HandleTable):
    handle = handles.create("x.wav", MemorySource(b"1"))
    with HandleTable() as other:
        with pytest.raises(HandleError, match="not issued"):
            other.release(handle)
    assert handles.is_live(handle)


def test_close_releases_everything_and_removes_spool(tmp_path: Path):
    table = HandleTable()
    handles = [table.create(f"{i}.wav", MemorySource(b"x")) for i in range(3)]
    spool = handles[0].path.parent

    table.close()

    assert table.live_count == 0
    assert all(h.released for h in handles)
    assert not spool.exists()


def test_release_all_counts(handles: HandleTable):
    for i in range(4):
        handles.create(f"{i}.wav", MemorySource(b"x"))
    assert handles.release_all() == 4
    assert handles.release_all() == 0
