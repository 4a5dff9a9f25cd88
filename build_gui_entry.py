# build_gui_entry.py
from __future__ import annotations

from sdeck_tools.gui import main

if __name__ == "__main__":
    raise SystemExit(main())
