"""Playback handles for pack entries.

Every :class:`~sdeck_tools.model.FileEntry` owns one
:class:`PlaybackHandle`: a private copy of the entry's bytes spooled
into a temporary directory, so the editor can hand a local file URL to
the media player without touching the user's original file or keeping
archive members open.

Handles are issued and revoked by a :class:`HandleTable`.  Each handle
must be released exactly once; releasing a handle twice, or releasing a
handle issued by another table, raises :class:`HandleError`.
"""

from __future__ import annotations

import re
import shutil
import tempfile
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol


_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


class HandleError(RuntimeError):
    """Raised when a handle is released twice or by the wrong table."""


class ByteSource(Protocol):
    @property
    def size(self) -> int: ...

    def read_bytes(self) -> bytes: ...


@dataclass(frozen=True)
class MemorySource:
    """An entry's bytes, captured once when the entry is created."""

    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    def read_bytes(self) -> bytes:
        return self.data


@dataclass
class PlaybackHandle:
    handle_id: str
    path: Path
    released: bool = False

    @property
    def uri(self) -> str:
        return self.path.as_uri()


@dataclass
class HandleTable:
    """Issue and revoke spooled playback handles.

    The spool directory is created on first use and removed by
    :meth:`close`.  The table may be used as a context manager.
    """

    prefix: str = "sdeck_tools_"
    _root: Optional[Path] = field(default=None, init=False, repr=False)
    _live: Dict[str, PlaybackHandle] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def live_count(self) -> int:
        return len(self._live)

    def _spool_dir(self) -> Path:
        if self._root is None:
            self._root = Path(tempfile.mkdtemp(prefix=self.prefix))
        return self._root

    def create(self, name: str, source: ByteSource) -> PlaybackHandle:
        """Spool ``source`` and return a fresh handle for it."""
        handle_id = uuid.uuid4().hex
        safe_name = _UNSAFE_NAME_RE.sub("_", Path(name).name) or "audio"
        with self._lock:
            target = self._spool_dir() / f"{handle_id[:12]}_{safe_name}"
        target.write_bytes(source.read_bytes())
        handle = PlaybackHandle(handle_id=handle_id, path=target)
        with self._lock:
            self._live[handle_id] = handle
        return handle

    def is_live(self, handle: PlaybackHandle) -> bool:
        return self._live.get(handle.handle_id) is handle

    def release(self, handle: PlaybackHandle) -> None:
        with self._lock:
            owned = self._live.get(handle.handle_id)
            if owned is not handle:
                state = "already released" if handle.released else "not issued by this table"
                raise HandleError(f"Handle {handle.handle_id} is {state}")
            del self._live[handle.handle_id]
            handle.released = True
        handle.path.unlink(missing_ok=True)

    def release_all(self) -> int:
        """Release every outstanding handle and return how many were live."""
        with self._lock:
            handles = list(self._live.values())
        for handle in handles:
            self.release(handle)
        return len(handles)

    def close(self) -> None:
        self.release_all()
        if self._root is not None:
            shutil.rmtree(self._root, ignore_errors=True)
            self._root = None

    def __enter__(self) -> "HandleTable":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
