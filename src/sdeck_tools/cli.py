"""Command-line interface for SDeck Tools.

The subcommands cover the non-interactive side of the editor: listing
the slot catalog, inspecting an exported pack, and building or
rebuilding a pack from files on disk.  Every command prints a JSON
report.  Run ``python -m sdeck_tools --help`` for usage.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .catalog import SlotCatalog, load_catalog
from .codec import ArchiveImportError
from .config_service import ConfigService, normalize_extensions
from .model import PackError
from .session import PackSession, dropped_report


APP_DIR = Path(__file__).resolve().parent.parent


def _parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sdeck-tools",
        description="SDeck Tools – build SFX packs for SteamOS and Big Picture",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--portable",
            "-p",
            action="store_true",
            help="Force portable mode (ignored if portable.flag is present)",
        )
        subparser.add_argument("--catalog", help="Path to a slot catalog JSON file")
        subparser.add_argument(
            "--verbose",
            action="store_true",
            help="Print session log lines to the console",
        )

    # slots
    sp = subparsers.add_parser("slots", help="List the slots a pack can fill")
    add_common(sp)
    # inspect
    sp = subparsers.add_parser("inspect", help="Import an archive and report its contents")
    sp.add_argument("archive", help="Path to the pack zip")
    add_common(sp)
    # build
    sp = subparsers.add_parser("build", help="Build a pack zip (or pack.json) from files on disk")
    sp.add_argument("output", help="Destination zip, or JSON file with --manifest-only")
    sp.add_argument("--from", dest="from_archive", help="Start from an existing pack zip")
    sp.add_argument(
        "--add",
        action="append",
        default=[],
        metavar="SLOT=PATH",
        help="Add a file (or every file in a folder) to a slot; repeatable",
    )
    sp.add_argument(
        "--remove",
        action="append",
        default=[],
        metavar="SLOT=NAME",
        help="Remove a file from a slot; repeatable",
    )
    sp.add_argument("--clear", action="append", default=[], metavar="SLOT", help="Remove every file from a slot")
    sp.add_argument("--name", help="Pack name")
    sp.add_argument("--description", help="Pack description")
    sp.add_argument("--author", help="Pack author")
    sp.add_argument("--version", dest="pack_version", help="Pack version")
    music = sp.add_mutually_exclusive_group()
    music.add_argument("--music", dest="music", action="store_true", default=None, help="Mark as a music pack")
    music.add_argument("--no-music", dest="music", action="store_false", help="Mark as a sound effects pack")
    sp.add_argument(
        "--allow-ext",
        action="append",
        default=[],
        metavar="EXT",
        help="Additional allowed extension (e.g. .mp3); repeatable",
    )
    sp.add_argument("--manifest-only", action="store_true", help="Write only the manifest JSON")
    add_common(sp)
    return parser.parse_args(argv)


def _split_pair(text: str, option: str) -> Tuple[str, str]:
    slot, sep, value = text.partition("=")
    if not sep or not slot or not value:
        raise ValueError(f"{option} expects SLOT=VALUE, got '{text}'")
    return slot.strip(), value.strip()


def _expand_paths(path: Path) -> List[Path]:
    if path.is_dir():
        return sorted(p for p in path.iterdir() if p.is_file())
    return [path]


def _load_settings(args: argparse.Namespace) -> Tuple[Dict[str, Any], SlotCatalog]:
    config_service = ConfigService(app_dir=APP_DIR)
    settings = config_service.load_settings(cli_portable=bool(getattr(args, "portable", False)))
    catalog_path = getattr(args, "catalog", None) or settings.get("catalog_path")
    return settings, load_catalog(Path(catalog_path) if catalog_path else None)


def _run_inspect(args: argparse.Namespace, settings: Dict[str, Any], catalog: SlotCatalog) -> Dict[str, Any]:
    with PackSession.from_settings(settings, catalog, log_to_console=args.verbose) as session:
        result = session.import_archive(Path(args.archive).expanduser())
        report = session.summary()
    report["dropped"] = dropped_report(result)
    report["unknown_slots"] = [slot for slot in result.mapping if slot not in catalog]
    return report


def _run_build(args: argparse.Namespace, settings: Dict[str, Any], catalog: SlotCatalog) -> Dict[str, Any]:
    settings = dict(settings)
    settings["allowed_extensions"] = normalize_extensions(
        list(settings.get("allowed_extensions") or []) + list(args.allow_ext)
    )
    report: Dict[str, Any] = {"accepted": [], "rejected": 0, "duplicates": 0, "removed": 0, "warnings": []}

    with PackSession.from_settings(settings, catalog, log_to_console=args.verbose) as session:
        if args.from_archive:
            result = session.import_archive(Path(args.from_archive).expanduser())
            report["dropped"] = dropped_report(result)

        for slot in args.clear:
            report["removed"] += session.remove_all(slot)
        for text in args.remove:
            slot, name = _split_pair(text, "--remove")
            if session.remove_file(slot, name):
                report["removed"] += 1
            else:
                report["warnings"].append(f"{name} is not in {slot}")

        batches: Dict[str, List[Path]] = {}
        for text in args.add:
            slot, raw_path = _split_pair(text, "--add")
            path = Path(raw_path).expanduser()
            if not path.exists():
                report["warnings"].append(f"File not found: {path}")
                continue
            batches.setdefault(slot, []).extend(_expand_paths(path))
        for slot, paths in batches.items():
            added = session.add_files(slot, paths)
            report["accepted"].extend(f"{slot}/{entry.name}" for entry in added.accepted)
            report["rejected"] += added.rejected_count
            report["duplicates"] += added.duplicate_count
            if added.advisory:
                report["warnings"].append(f"{slot}: {added.advisory}")

        for name, value in (
            ("name", args.name),
            ("description", args.description),
            ("author", args.author),
            ("version", args.pack_version),
            ("music", args.music),
        ):
            if value is not None:
                session.update_metadata(name, value)

        output = Path(args.output).expanduser()
        if args.manifest_only:
            session.export_manifest(output)
        else:
            session.export_archive(output)
        report["output"] = str(output.resolve())
        report["files"] = session.model.entry_count()
        report["total_bytes"] = session.model.total_bytes()
    return report


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_arguments(argv)
    command = args.command
    try:
        settings, catalog = _load_settings(args)
    except (OSError, ValueError) as exc:
        print(f"Error: could not load slot catalog: {exc}")
        return 1

    if command == "slots":
        print(json.dumps(catalog.to_data(), indent=2))
        return 0

    try:
        if command == "inspect":
            report = _run_inspect(args, settings, catalog)
        elif command == "build":
            report = _run_build(args, settings, catalog)
        else:
            print(f"Error: unrecognized command {command}")
            return 1
    except (ArchiveImportError, PackError, ValueError, OSError) as exc:
        print(f"Error: {exc}")
        return 1
    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
