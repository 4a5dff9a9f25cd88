"""SDeck Tools package

This package contains the pack model, the archive codec, the editing
session, a command-line interface and an optional PySide6 editor for
building SteamOS / Big Picture sound effect packs.

Public classes are re-exported here for convenience so callers do not
need to know the internal layout.
"""

from .catalog import Slot, SlotCatalog, load_catalog  # noqa: F401
from .codec import (  # noqa: F401
    ArchiveImportError,
    ArchiveReadError,
    MalformedManifestError,
    MissingManifestError,
)
from .config_service import ConfigService  # noqa: F401
from .handles import HandleTable  # noqa: F401
from .model import PackMetadata, PackModel  # noqa: F401
from .session import PackSession, SessionBusyError  # noqa: F401

__all__ = [
    "ArchiveImportError",
    "ArchiveReadError",
    "ConfigService",
    "HandleTable",
    "MalformedManifestError",
    "MissingManifestError",
    "PackMetadata",
    "PackModel",
    "PackSession",
    "SessionBusyError",
    "Slot",
    "SlotCatalog",
    "load_catalog",
]
