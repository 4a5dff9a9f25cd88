"""Pack archive export and import.

An exported pack is a zip archive with a ``pack.json`` manifest at the
root and every referenced audio file stored next to it under its own
name::

    audio_pack.zip
    ├── pack.json
    ├── click.wav
    └── whoosh.wav

The manifest carries the pack metadata plus a ``mappings`` object from
slot identifier to the ordered list of file names in that slot.  File
names share one flat namespace; a name used in several slots is stored
once.

Import is tolerant of partial archives: a manifest entry whose file is
missing from the archive is dropped (and counted) rather than failing
the import.  Missing or malformed manifests are hard errors and leave
the caller's state untouched, since the codec never installs the
result itself.
"""

from __future__ import annotations

import io
import json
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Tuple, Union

import jsonschema

from .catalog import SlotCatalog
from .config_service import SCHEMA_DIR, load_json
from .handles import HandleTable, MemorySource
from .model import FileEntry, PackError, PackMapping, PackMetadata, empty_mapping


MANIFEST_NAME = "pack.json"
MANIFEST_SCHEMA_PATH = SCHEMA_DIR / "pack.schema.json"

ArchiveSource = Union[bytes, str, Path, IO[bytes]]

# Raised by ZipFile.read for damaged, encrypted or unsupported members.
_MEMBER_READ_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError)


class ArchiveImportError(PackError):
    """An archive could not be turned back into a pack."""


class ArchiveReadError(ArchiveImportError):
    """The input is not a readable zip archive."""


class MissingManifestError(ArchiveImportError):
    """The archive has no ``pack.json`` at its root."""


class MalformedManifestError(ArchiveImportError):
    """``pack.json`` is not valid JSON or does not match the manifest schema."""


@dataclass
class ImportResult:
    mapping: PackMapping
    metadata: PackMetadata
    dropped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


def build_manifest(mapping: PackMapping, metadata: PackMetadata) -> Dict[str, Any]:
    manifest = metadata.to_dict()
    manifest["mappings"] = {slot: [entry.name for entry in entries] for slot, entries in mapping.items()}
    return manifest


def export_manifest(mapping: PackMapping, metadata: PackMetadata) -> str:
    return json.dumps(build_manifest(mapping, metadata), indent=2)


def write_manifest(path: Path, mapping: PackMapping, metadata: PackMetadata) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_manifest(mapping, metadata), encoding="utf-8")
    return path


def export_archive(mapping: PackMapping, metadata: PackMetadata) -> bytes:
    """Return the zip archive bytes for a pack."""
    buffer = io.BytesIO()
    written = {MANIFEST_NAME}
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(MANIFEST_NAME, export_manifest(mapping, metadata))
        for entries in mapping.values():
            for entry in entries:
                if entry.name in written:
                    continue
                zf.writestr(entry.name, entry.read_bytes())
                written.add(entry.name)
    return buffer.getvalue()


def write_archive(path: Path, mapping: PackMapping, metadata: PackMetadata) -> Path:
    """Write the archive to ``path``; a partial file is removed on failure."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = export_archive(mapping, metadata)
    try:
        path.write_bytes(data)
    except OSError:
        path.unlink(missing_ok=True)
        raise
    return path


def _open_zip(source: ArchiveSource) -> zipfile.ZipFile:
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        return zipfile.ZipFile(source, "r")
    except (zipfile.BadZipFile, EOFError) as exc:
        raise ArchiveReadError(f"Invalid ZIP file: {exc}") from exc


def _read_member(zf: zipfile.ZipFile, name: str) -> bytes:
    try:
        return zf.read(name)
    except _MEMBER_READ_ERRORS as exc:
        raise ArchiveReadError(f"Invalid ZIP file: {exc}") from exc


def _read_manifest(zf: zipfile.ZipFile) -> Dict[str, Any]:
    try:
        raw = _read_member(zf, MANIFEST_NAME)
    except KeyError:
        raise MissingManifestError(f"Invalid ZIP file: {MANIFEST_NAME} not found.") from None
    try:
        manifest = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedManifestError(f"Invalid {MANIFEST_NAME}: {exc}") from exc
    schema = load_json(MANIFEST_SCHEMA_PATH)
    try:
        jsonschema.validate(instance=manifest, schema=schema)
    except jsonschema.ValidationError as exc:
        raise MalformedManifestError(f"Invalid {MANIFEST_NAME}: {exc.message}") from exc
    return manifest


def import_archive(
    source: ArchiveSource,
    catalog: SlotCatalog,
    handles: HandleTable,
    defaults: Optional[Dict[str, Any]] = None,
) -> ImportResult:
    """Rebuild a mapping and metadata from an archive.

    Every resolved file gets a fresh handle from ``handles``.  If the
    rebuild fails partway, those handles are released before the error
    propagates.
    """
    with _open_zip(source) as zf:
        manifest = _read_manifest(zf)
        members = {info.filename for info in zf.infolist() if not info.is_dir()}
        mapping = empty_mapping(catalog)
        dropped: List[Tuple[str, str]] = []
        created: List[FileEntry] = []
        try:
            for slot, names in (manifest.get("mappings") or {}).items():
                entries = mapping.setdefault(slot, [])
                seen = set()
                for name in names:
                    if name in seen:
                        continue
                    seen.add(name)
                    if name == MANIFEST_NAME or name not in members:
                        dropped.append((slot, name))
                        continue
                    source_bytes = MemorySource(_read_member(zf, name))
                    entry = FileEntry(
                        name=name,
                        source=source_bytes,
                        handle=handles.create(name, source_bytes),
                        size_bytes=source_bytes.size,
                    )
                    created.append(entry)
                    entries.append(entry)
        except BaseException:
            for entry in created:
                handles.release(entry.handle)
            raise
    metadata = PackMetadata.from_dict(manifest, defaults=defaults)
    return ImportResult(mapping=mapping, metadata=metadata, dropped=dropped)
