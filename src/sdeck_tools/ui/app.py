from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from sdeck_tools.ui.window import PackEditorWindow


def main() -> int:
    app = QApplication(sys.argv)
    app.setApplicationName("SDeck Tools")
    app.setOrganizationName("SDeckTools")

    win = PackEditorWindow()
    win.show()

    try:
        return app.exec()
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
