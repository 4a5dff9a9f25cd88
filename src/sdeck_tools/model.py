"""In-memory pack model.

The :class:`PackModel` holds the two halves of an editable pack:

* the *mapping* from slot identifier to an ordered list of
  :class:`FileEntry` (insertion order is display and export order);
* the :class:`PackMetadata` written to ``pack.json``.

Every catalog slot is always present in the mapping, possibly empty.
Each entry owns a playback handle issued by the model's
:class:`~sdeck_tools.handles.HandleTable`; the model releases it
whenever the entry is removed or the mapping is replaced.

Adding files follows a soft-reject policy: names with a disallowed
extension are counted, duplicates are ignored, and neither aborts the
rest of the batch.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .catalog import SlotCatalog
from .config_service import DEFAULT_PACK_INFO, normalize_extensions
from .handles import ByteSource, HandleTable, MemorySource, PlaybackHandle


INCOMPATIBLE_FILES_MESSAGE = "Some files were incompatible and have been skipped."

METADATA_FIELDS: Tuple[str, ...] = (
    "name",
    "description",
    "author",
    "version",
    "manifest_version",
    "music",
    "ignore",
)


class PackError(Exception):
    """Base class for pack editing and archive errors."""


class UnknownSlotError(PackError, KeyError):
    """Raised when a slot identifier is not part of the mapping."""

    def __str__(self) -> str:
        return f"Unknown slot: {self.args[0]}" if self.args else "Unknown slot"


@dataclass(frozen=True)
class CandidateFile:
    """A file offered for a slot that is not (yet) on disk."""

    name: str
    data: bytes = field(repr=False)


Candidate = Union[CandidateFile, Path, str]


@dataclass
class FileEntry:
    name: str
    source: ByteSource = field(repr=False)
    handle: PlaybackHandle = field(repr=False)
    size_bytes: int = 0

    def read_bytes(self) -> bytes:
        return self.source.read_bytes()


@dataclass
class AddResult:
    accepted: List[FileEntry] = field(default_factory=list)
    rejected_count: int = 0
    duplicate_count: int = 0

    @property
    def advisory(self) -> str:
        """One aggregate warning for the whole batch, or ``""``."""
        return INCOMPATIBLE_FILES_MESSAGE if self.rejected_count else ""


@dataclass
class PackMetadata:
    name: str = DEFAULT_PACK_INFO["name"]
    description: str = DEFAULT_PACK_INFO["description"]
    author: str = DEFAULT_PACK_INFO["author"]
    version: str = DEFAULT_PACK_INFO["version"]
    manifest_version: int = DEFAULT_PACK_INFO["manifest_version"]
    music: bool = DEFAULT_PACK_INFO["music"]
    ignore: List[str] = field(default_factory=list)
    # Manifest keys this editor does not know about, kept for re-export.
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional[Dict[str, Any]] = None) -> "PackMetadata":
        values = copy.deepcopy(defaults if defaults is not None else DEFAULT_PACK_INFO)
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key in METADATA_FIELDS:
                values[key] = value
            elif key != "mappings":
                extra[key] = copy.deepcopy(value)
        meta = cls(extra=extra)
        for key in METADATA_FIELDS:
            if key in values:
                meta.set_field(key, values[key])
        return meta

    def set_field(self, name: str, value: Any) -> None:
        if name not in METADATA_FIELDS:
            raise ValueError(f"Unknown pack field: {name}")
        if name == "manifest_version":
            value = int(value)
        elif name == "music":
            value = bool(value)
        elif name == "ignore":
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"ignore must be a list of file names, not {type(value).__name__}")
            value = [str(v) for v in value]
        else:
            value = str(value)
        setattr(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {key: copy.deepcopy(getattr(self, key)) for key in METADATA_FIELDS}
        for key, value in self.extra.items():
            data.setdefault(key, copy.deepcopy(value))
        return data


PackMapping = Dict[str, List[FileEntry]]


def empty_mapping(catalog: SlotCatalog) -> PackMapping:
    return {slot_id: [] for slot_id in catalog.slot_ids()}


def format_file_size(num_bytes: int) -> str:
    """Return a human readable size such as ``"1.50 KB"``."""
    if num_bytes <= 0:
        return "0 B"
    sizes = ["B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(sizes) - 1:
        value /= 1024
        i += 1
    return f"{value:.2f} {sizes[i]}"


def format_duration(milliseconds: int) -> str:
    """Return a playback time as ``m:ss``."""
    seconds = max(0, int(milliseconds)) // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def _candidate_name(candidate: Candidate) -> str:
    if isinstance(candidate, CandidateFile):
        return candidate.name
    return Path(candidate).name


def _candidate_source(candidate: Candidate) -> ByteSource:
    # Files on disk are read once here; later edits or deletions of the
    # original do not change what the entry plays or exports.
    if isinstance(candidate, CandidateFile):
        return MemorySource(candidate.data)
    return MemorySource(Path(candidate).read_bytes())


@dataclass
class PackModel:
    """Slot mapping plus metadata, with handle bookkeeping."""

    catalog: SlotCatalog
    handles: HandleTable = field(default_factory=HandleTable)
    allowed_extensions: Iterable[str] = (".wav",)
    metadata: PackMetadata = field(default_factory=PackMetadata)
    mapping: PackMapping = field(init=False)

    def __post_init__(self) -> None:
        self.allowed_extensions = tuple(normalize_extensions(self.allowed_extensions))
        self.mapping = empty_mapping(self.catalog)

    # ------------------------------------------------------------------
    # Queries
    def is_allowed(self, name: str) -> bool:
        return Path(name).suffix.lower() in self.allowed_extensions

    def slot_entries(self, slot: str) -> List[FileEntry]:
        try:
            return self.mapping[slot]
        except KeyError:
            raise UnknownSlotError(slot) from None

    def entry_names(self, slot: str) -> List[str]:
        return [entry.name for entry in self.slot_entries(slot)]

    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.mapping.values())

    def total_bytes(self) -> int:
        return sum(entry.size_bytes for entries in self.mapping.values() for entry in entries)

    # ------------------------------------------------------------------
    # Mutations
    def add_files(self, slot: str, candidates: Iterable[Candidate]) -> AddResult:
        entries = self.slot_entries(slot)
        existing = {entry.name for entry in entries}
        result = AddResult()
        for candidate in candidates:
            name = _candidate_name(candidate)
            if not self.is_allowed(name):
                result.rejected_count += 1
                continue
            if name in existing:
                result.duplicate_count += 1
                continue
            source = _candidate_source(candidate)
            handle = self.handles.create(name, source)
            entry = FileEntry(name=name, source=source, handle=handle, size_bytes=source.size)
            entries.append(entry)
            existing.add(name)
            result.accepted.append(entry)
        return result

    def remove_file(self, slot: str, entry_name: str) -> bool:
        """Remove one entry; return ``False`` when it was not present."""
        entries = self.slot_entries(slot)
        for index, entry in enumerate(entries):
            if entry.name == entry_name:
                self.handles.release(entry.handle)
                del entries[index]
                return True
        return False

    def remove_all(self, slot: str) -> int:
        entries = self.slot_entries(slot)
        for entry in entries:
            self.handles.release(entry.handle)
        count = len(entries)
        entries.clear()
        return count

    def replace_all(self, new_mapping: PackMapping, new_metadata: Optional[PackMetadata] = None) -> None:
        """Release every current handle, then install ``new_mapping``."""
        for entries in self.mapping.values():
            for entry in entries:
                self.handles.release(entry.handle)
        mapping = empty_mapping(self.catalog)
        for slot, entries in new_mapping.items():
            mapping[slot] = list(entries)
        self.mapping = mapping
        if new_metadata is not None:
            self.metadata = new_metadata

    def update_metadata(self, name: str, value: Any) -> None:
        self.metadata.set_field(name, value)


__all__ = [
    "AddResult",
    "CandidateFile",
    "FileEntry",
    "INCOMPATIBLE_FILES_MESSAGE",
    "METADATA_FIELDS",
    "PackError",
    "PackMapping",
    "PackMetadata",
    "PackModel",
    "UnknownSlotError",
    "empty_mapping",
    "format_duration",
    "format_file_size",
]
