"""Editing session for one pack.

:class:`PackSession` is the single owner of the editable state (a
:class:`~sdeck_tools.model.PackModel` and its handle table).  Both the
CLI and the desktop editor go through it.

Every operation takes the session lock.  Import and export additionally
mark the session busy for their whole duration; a mutation attempted
while busy raises :class:`SessionBusyError` instead of racing with the
mapping swap.  An import only replaces the current state after the new
mapping has been completely built, so a failed import leaves the
previous pack intact and playable.

The session is UI agnostic: progress is reported as plain log lines
through an optional ``log_callback`` and, optionally, the console.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from . import codec
from .catalog import SlotCatalog
from .config_service import DEFAULT_PACK_INFO, merge_pack_defaults
from .handles import HandleTable
from .model import AddResult, Candidate, PackError, PackMapping, PackMetadata, PackModel, empty_mapping


class SessionBusyError(PackError):
    """A mutation was attempted while an import or export is running."""


@dataclass
class PackSession:
    """Single-writer container around a :class:`PackModel`."""

    catalog: SlotCatalog
    allowed_extensions: Iterable[str] = (".wav",)
    defaults: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_PACK_INFO))
    log_callback: Optional[Callable[[str], None]] = None
    log_to_console: bool = False
    handles: HandleTable = field(default_factory=HandleTable)
    model: PackModel = field(init=False)
    _lock: Any = field(init=False, default_factory=threading.RLock, repr=False)
    _busy: Optional[str] = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.model = PackModel(
            catalog=self.catalog,
            handles=self.handles,
            allowed_extensions=self.allowed_extensions,
            metadata=PackMetadata.from_dict({}, defaults=self.defaults),
        )

    @classmethod
    def from_settings(cls, settings: Dict[str, Any], catalog: SlotCatalog, **kwargs: Any) -> "PackSession":
        return cls(
            catalog=catalog,
            allowed_extensions=settings.get("allowed_extensions") or (".wav",),
            defaults=merge_pack_defaults(settings),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Logging
    def _emit_log(self, msg: str) -> None:
        if self.log_to_console:
            print(msg)
        if self.log_callback is not None:
            try:
                self.log_callback(msg)
            except Exception:
                pass

    # ------------------------------------------------------------------
    # Serialisation
    @property
    def busy(self) -> Optional[str]:
        """Name of the running import/export, or ``None``."""
        return self._busy

    @contextmanager
    def _mutation(self) -> Iterator[PackModel]:
        with self._lock:
            if self._busy:
                raise SessionBusyError(f"Cannot edit the pack while {self._busy} is in progress")
            yield self.model

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with self._lock:
            if self._busy:
                raise SessionBusyError(f"Cannot start {name} while {self._busy} is in progress")
            self._busy = name
        try:
            yield
        finally:
            with self._lock:
                self._busy = None

    # ------------------------------------------------------------------
    # Queries
    @property
    def metadata(self) -> PackMetadata:
        return self.model.metadata

    @property
    def mapping(self) -> PackMapping:
        return self.model.mapping

    def snapshot(self) -> Tuple[PackMapping, PackMetadata]:
        """Return a shallow copy of the mapping and a copy of the metadata."""
        with self._lock:
            mapping = {slot: list(entries) for slot, entries in self.model.mapping.items()}
            return mapping, copy.deepcopy(self.model.metadata)

    def summary(self) -> Dict[str, Any]:
        mapping, metadata = self.snapshot()
        return {
            "metadata": metadata.to_dict(),
            "mappings": {slot: [entry.name for entry in entries] for slot, entries in mapping.items()},
            "files": sum(len(entries) for entries in mapping.values()),
            "total_bytes": sum(entry.size_bytes for entries in mapping.values() for entry in entries),
        }

    # ------------------------------------------------------------------
    # Mutations
    def add_files(self, slot: str, candidates: Iterable[Candidate]) -> AddResult:
        with self._mutation() as model:
            result = model.add_files(slot, candidates)
        self._emit_log(
            f"Added {len(result.accepted)} file(s) to {slot} "
            f"rejected={result.rejected_count} duplicates={result.duplicate_count}"
        )
        return result

    def remove_file(self, slot: str, entry_name: str) -> bool:
        with self._mutation() as model:
            removed = model.remove_file(slot, entry_name)
        if removed:
            self._emit_log(f"Removed {entry_name} from {slot}")
        return removed

    def remove_all(self, slot: str) -> int:
        with self._mutation() as model:
            count = model.remove_all(slot)
        self._emit_log(f"Removed {count} file(s) from {slot}")
        return count

    def update_metadata(self, name: str, value: Any) -> None:
        with self._mutation() as model:
            model.update_metadata(name, value)

    # ------------------------------------------------------------------
    # Import / export
    def export_archive_bytes(self) -> bytes:
        with self._operation("export"):
            mapping, metadata = self.snapshot()
            self._emit_log(f"Exporting archive with {sum(len(e) for e in mapping.values())} file(s)")
            return codec.export_archive(mapping, metadata)

    def export_archive(self, path: Path) -> Path:
        with self._operation("export"):
            mapping, metadata = self.snapshot()
            self._emit_log(f"Exporting archive: {path}")
            written = codec.write_archive(Path(path), mapping, metadata)
        self._emit_log(f"Archive written: {written}")
        return written

    def manifest_text(self) -> str:
        mapping, metadata = self.snapshot()
        return codec.export_manifest(mapping, metadata)

    def export_manifest(self, path: Path) -> Path:
        mapping, metadata = self.snapshot()
        written = codec.write_manifest(Path(path), mapping, metadata)
        self._emit_log(f"Manifest written: {written}")
        return written

    def import_archive(self, source: codec.ArchiveSource) -> codec.ImportResult:
        """Import an archive and, on success, replace the current pack."""
        with self._operation("import"):
            self._emit_log("Importing archive")
            result = codec.import_archive(source, self.catalog, self.handles, defaults=self.defaults)
            with self._lock:
                self.model.replace_all(result.mapping, result.metadata)
        unknown = [slot for slot in result.mapping if slot not in self.catalog]
        if unknown:
            self._emit_log(f"Archive uses {len(unknown)} slot(s) missing from the catalog: {', '.join(unknown)}")
        for slot, name in result.dropped:
            self._emit_log(f"Skipped {name} in {slot}: not found in archive")
        self._emit_log(f"Imported {self.model.entry_count()} file(s), dropped={result.dropped_count}")
        return result

    def close(self) -> None:
        with self._lock:
            self.handles.close()
            self.model.mapping = empty_mapping(self.catalog)

    def __enter__(self) -> "PackSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def dropped_report(result: codec.ImportResult) -> List[Dict[str, str]]:
    return [{"slot": slot, "file": name} for slot, name in result.dropped]
