"""Slot catalog for SDeck Tools.

A pack maps fixed slot identifiers (the file names the Steam client
looks up, e.g. ``"deck_ui_navigation.wav"``) to user supplied audio
files.  The slots themselves are not created by the editor; they are
read from a static catalog file with the following structure::

    [
      {
        "fileName": "deck_ui_navigation.wav",   # slot identifier
        "title": "Navigation",
        "description": "Played when focus moves ..."
      },
      ...
    ]

The bundled catalog lives in ``data/sounds.json`` and is validated
against ``schemas/catalog.schema.json`` on load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .config_service import PACKAGE_DIR, SCHEMA_DIR, load_json, validate_json


DEFAULT_CATALOG_PATH = PACKAGE_DIR / "data" / "sounds.json"
CATALOG_SCHEMA_PATH = SCHEMA_DIR / "catalog.schema.json"


@dataclass(frozen=True)
class Slot:
    slot_id: str
    title: str = ""
    description: str = ""

    @property
    def display_title(self) -> str:
        return self.title or self.slot_id


@dataclass
class SlotCatalog:
    """Read-only, ordered collection of :class:`Slot` entries."""

    slots: Sequence[Slot] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.slots = tuple(self.slots)
        self._index: Dict[str, Slot] = {}
        for slot in self.slots:
            if slot.slot_id in self._index:
                raise ValueError(f"Duplicate slot in catalog: {slot.slot_id}")
            self._index[slot.slot_id] = slot

    def __iter__(self) -> Iterator[Slot]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._index

    def get(self, slot_id: str) -> Optional[Slot]:
        return self._index.get(slot_id)

    def slot_ids(self) -> List[str]:
        return [slot.slot_id for slot in self.slots]

    @classmethod
    def from_ids(cls, slot_ids: Sequence[str]) -> "SlotCatalog":
        """Build a catalog from bare identifiers (titles left empty)."""
        return cls([Slot(slot_id) for slot_id in slot_ids])

    @classmethod
    def from_data(cls, data: List[Dict[str, Any]]) -> "SlotCatalog":
        validate_json(data, CATALOG_SCHEMA_PATH)
        return cls(
            [
                Slot(
                    slot_id=str(item["fileName"]),
                    title=str(item.get("title", "")),
                    description=str(item.get("description", "")),
                )
                for item in data
            ]
        )

    def to_data(self) -> List[Dict[str, str]]:
        return [
            {"fileName": slot.slot_id, "title": slot.title, "description": slot.description}
            for slot in self.slots
        ]


def load_catalog(path: Optional[Path] = None) -> SlotCatalog:
    """Load and validate a catalog file, defaulting to the bundled one."""
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    data = load_json(catalog_path)
    if data is None:
        raise FileNotFoundError(f"Slot catalog not found: {catalog_path}")
    return SlotCatalog.from_data(data)
