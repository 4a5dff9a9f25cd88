# src/sdeck_tools/__main__.py
from __future__ import annotations

import sys


def _run_cli() -> int:
    """Run the CLI entrypoint."""
    from sdeck_tools.cli import main as cli_main

    return int(cli_main())


def _run_gui() -> int:
    """Run the desktop editor (requires PySide6)."""
    try:
        from sdeck_tools.gui import main as gui_main
    except ModuleNotFoundError as e:
        if "PySide6" in str(e):
            print(
                "GUI dependencies are not installed.\n"
                'Install them, then re-run:\n  pip install -e ".[gui]"\n'
                "Or use the CLI:\n  sdeck-tools --help\n"
                "  python -m sdeck_tools --help"
            )
            return 1
        raise

    return int(gui_main())


def main() -> int:
    """
    Module entrypoint:
      - python -m sdeck_tools            -> CLI help / CLI execution
      - python -m sdeck_tools gui        -> desktop editor
      - python -m sdeck_tools <command>  -> CLI command
    """
    if len(sys.argv) > 1 and sys.argv[1].lower() in {"gui", "qt"}:
        # Remove the "gui" token before handing control to the editor.
        sys.argv.pop(1)
        return _run_gui()

    return _run_cli()


if __name__ == "__main__":
    raise SystemExit(main())
