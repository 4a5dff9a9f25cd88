from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sdeck_tools.config_service import normalize_extensions


@dataclass(slots=True)
class EditorState:
    theme: str = "system"
    last_directory: str = ""
    allowed_extensions: list[str] = field(default_factory=lambda: [".wav"])

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "EditorState":
        theme = str(config.get("theme", "system"))
        if theme not in {"system", "dark", "light"}:
            theme = "system"
        return cls(
            theme=theme,
            last_directory=str(config.get("last_directory", "") or ""),
            allowed_extensions=normalize_extensions(config.get("allowed_extensions") or [".wav"]),
        )

    def to_config_updates(self) -> dict[str, Any]:
        return {
            "theme": self.theme,
            "last_directory": self.last_directory,
            "allowed_extensions": list(self.allowed_extensions),
        }

    def file_filter(self) -> str:
        patterns = " ".join(f"*{ext}" for ext in self.allowed_extensions)
        return f"Audio files ({patterns})"
