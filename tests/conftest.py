import io
import json
import struct
import sys
import zipfile
from pathlib import Path

import pytest

# Add the src directory to sys.path so that sdeck_tools can be imported
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from sdeck_tools.catalog import SlotCatalog
from sdeck_tools.handles import HandleTable


@pytest.fixture
def catalog() -> SlotCatalog:
    """Two-slot catalog used by most tests."""
    return SlotCatalog.from_ids(["a.wav", "b.wav"])


@pytest.fixture
def handles():
    table = HandleTable(prefix="sdeck_tools_test_")
    yield table
    table.close()


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    """A folder of small fake audio files (contents are never decoded)."""
    folder = tmp_path / "audio"
    folder.mkdir()
    (folder / "kick.wav").write_bytes(b"RIFF-kick")
    (folder / "snare.wav").write_bytes(b"RIFF-snare-longer")
    (folder / "kick.mid").write_bytes(b"MThd")
    (folder / "LOUD.WAV").write_bytes(b"RIFF-loud")
    return folder


# ============================================================================
# DAMAGED ARCHIVES
# ============================================================================


def _two_file_pack(second_compression: int = zipfile.ZIP_STORED) -> bytearray:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("pack.json", json.dumps({"mappings": {"a.wav": ["1.wav", "2.wav"]}}))
        zf.writestr("1.wav", b"RIFF-one")
        zf.writestr("2.wav", b"RIFF-two" * 8, compress_type=second_compression)
    return bytearray(buffer.getvalue())


def _header_offsets(data: bytearray, name: str) -> tuple:
    """Return the local header and central directory offsets of ``name``."""
    with zipfile.ZipFile(io.BytesIO(bytes(data))) as zf:
        local = zf.getinfo(name).header_offset
    central = data.find(b"PK\x01\x02")
    while central != -1:
        name_len = struct.unpack_from("<H", data, central + 28)[0]
        if data[central + 46:central + 46 + name_len] == name.encode():
            return local, central
        central = data.find(b"PK\x01\x02", central + 4)
    raise KeyError(name)


def _data_span(data: bytearray, name: str) -> tuple:
    local, _ = _header_offsets(data, name)
    name_len, extra_len = struct.unpack_from("<HH", data, local + 26)
    size = struct.unpack_from("<I", data, local + 18)[0]
    return local + 30 + name_len + extra_len, size


@pytest.fixture
def damaged_archive():
    """Build a two-file pack whose zip structure is broken in one way.

    ``manifest_crc`` flips one byte of a stored ``pack.json``;
    ``member_method`` marks ``2.wav`` with an unsupported compression
    method; ``member_deflate`` replaces its deflate stream with garbage;
    ``member_encrypted`` sets its encryption flag.
    """

    def build(kind: str) -> bytes:
        if kind == "manifest_crc":
            data = _two_file_pack()
            start, _ = _data_span(data, "pack.json")
            data[start + 2] ^= 0x01
        elif kind == "member_method":
            data = _two_file_pack()
            local, central = _header_offsets(data, "2.wav")
            struct.pack_into("<H", data, local + 8, 9)
            struct.pack_into("<H", data, central + 10, 9)
        elif kind == "member_deflate":
            data = _two_file_pack(zipfile.ZIP_DEFLATED)
            start, size = _data_span(data, "2.wav")
            data[start:start + size] = b"\xff" * size
        elif kind == "member_encrypted":
            data = _two_file_pack()
            local, central = _header_offsets(data, "2.wav")
            data[local + 6] |= 0x01
            data[central + 8] |= 0x01
        else:
            raise ValueError(f"unknown damage kind: {kind}")
        return bytes(data)

    return build
