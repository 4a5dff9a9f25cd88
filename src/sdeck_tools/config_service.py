"""Settings management for SDeck Tools.

This module centralises all logic related to finding and loading the
editor settings.  It supports both AppData and portable installation
modes, resolves the appropriate settings directory, and exposes helper
functions to read/write JSON files with JSON schema validation.

Portable mode is controlled via a ``portable.flag`` file located
alongside the application or by passing ``--portable`` to the CLI.
The flag file takes precedence over the command line.

Example usage::

    from sdeck_tools.config_service import ConfigService

    config_service = ConfigService(app_dir=Path(__file__).parent)
    settings = config_service.load_settings()
    settings["allowed_extensions"] = [".wav", ".mp3"]
    config_service.save_settings(settings)

"""

from __future__ import annotations

import copy
import json
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema


PACKAGE_DIR = Path(__file__).resolve().parent
SCHEMA_DIR = PACKAGE_DIR / "schemas"

DEFAULT_PACK_INFO: Dict[str, Any] = {
    "name": "SDeckTools Pack",
    "description": "SFX Pack created in SDeckTools.com",
    "author": "SDeckTools.com",
    "version": "v1.0",
    "manifest_version": 2,
    "music": False,
    "ignore": [],
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "allowed_extensions": [".wav"],
    "theme": "system",
    "archive_filename": "audio_pack.zip",
    "manifest_filename": "config.json",
    # Folder of stock slot sounds, one file per slot id; "" disables the preview.
    "default_sounds_dir": "",
}


def _get_appdata_root(app_name: str = "SDeckTools") -> Path:
    """Return the platform-specific base directory for settings files."""
    system = platform.system().lower()
    if system == "windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / app_name
        return Path.home() / f"AppData/Roaming/{app_name}"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / app_name
    return Path.home() / ".config" / app_name


def load_json(path: Path) -> Any:
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(data: Any, file_path: Path) -> None:
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2)


def validate_json(data: Any, schema_path: Path) -> None:
    """Validate ``data`` against the schema stored at ``schema_path``.

    Raises :class:`ValueError` carrying the first validation message.
    A missing schema file disables validation.
    """
    schema = load_json(schema_path)
    if not schema:
        return
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc.message}") from exc


def merge_pack_defaults(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay the ``pack_defaults`` setting on :data:`DEFAULT_PACK_INFO`."""
    defaults = copy.deepcopy(DEFAULT_PACK_INFO)
    overrides = (settings or {}).get("pack_defaults")
    if isinstance(overrides, dict):
        defaults.update(copy.deepcopy(overrides))
    return defaults


def normalize_extensions(values: Any) -> List[str]:
    """Return lower-cased, dot-prefixed, de-duplicated extensions."""
    result: List[str] = []
    for raw in values or []:
        text = str(raw).strip().lower()
        if not text:
            continue
        if not text.startswith("."):
            text = "." + text
        if text not in result:
            result.append(text)
    return result


@dataclass
class ConfigService:
    """Resolve and manage SDeck Tools settings."""

    app_dir: Path
    portable_flag_filename: str = "portable.flag"
    settings_filename: str = "settings.json"
    schema_dir: Path = SCHEMA_DIR
    settings_schema_name: str = "settings.schema.json"
    _cached_mode: Optional[bool] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.app_dir = Path(self.app_dir)
        self.schema_dir = Path(self.schema_dir)

    def _portable_flag_exists(self) -> bool:
        return (self.app_dir / self.portable_flag_filename).exists()

    def detect_mode(self, cli_portable: bool = False) -> bool:
        """Return ``True`` if portable mode should be used.

        Portable mode is selected if a ``portable.flag`` file exists in
        the application directory, or if ``cli_portable`` is truthy.
        The result is cached for subsequent calls.
        """
        if self._cached_mode is None:
            if self._portable_flag_exists():
                self._cached_mode = True
            else:
                self._cached_mode = bool(cli_portable)
        return self._cached_mode

    def is_portable_mode(self) -> bool:
        """Portable mode is enabled when portable.flag exists in app_dir."""
        return self._portable_flag_exists()

    def get_config_dir(self, cli_portable: bool = False) -> Path:
        """Return the resolved settings directory."""
        if self.detect_mode(cli_portable=cli_portable):
            return self.app_dir
        return _get_appdata_root()

    def get_settings_path(self, cli_portable: bool = False) -> Path:
        return self.get_config_dir(cli_portable) / self.settings_filename

    def get_schema_path(self, schema_name: str) -> Path:
        return self.schema_dir / schema_name

    def load_settings(self, cli_portable: bool = False) -> Dict[str, Any]:
        """Load settings merged over :data:`DEFAULT_SETTINGS`.

        An invalid settings file is reported and ignored.
        """
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        settings_path = self.get_settings_path(cli_portable)
        try:
            data = load_json(settings_path)
        except json.JSONDecodeError as exc:
            print(f"Warning: {settings_path} is not valid JSON ({exc.msg}). Falling back to defaults.")
            return settings
        if data is None:
            return settings
        try:
            validate_json(data, self.get_schema_path(self.settings_schema_name))
        except ValueError as exc:
            print(f"Warning: {exc}. Falling back to defaults.")
            return settings
        settings.update(data)
        settings["allowed_extensions"] = normalize_extensions(settings.get("allowed_extensions"))
        return settings

    def save_settings(self, settings: Dict[str, Any], cli_portable: bool = False) -> None:
        """Write settings to disk, validating against the schema first."""
        validate_json(settings, self.get_schema_path(self.settings_schema_name))
        save_json(settings, self.get_settings_path(cli_portable))

    def pack_defaults(self, settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Return the metadata defaults for a new pack."""
        return merge_pack_defaults(settings if settings is not None else self.load_settings())

    def default_sounds_dir(self, settings: Optional[Dict[str, Any]] = None) -> Optional[Path]:
        """Return the stock slot sounds folder, or ``None`` when unset.

        A relative path is taken from the application directory.
        """
        settings = settings if settings is not None else self.load_settings()
        raw = str(settings.get("default_sounds_dir") or "").strip()
        if not raw:
            return None
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = self.app_dir / path
        return path
