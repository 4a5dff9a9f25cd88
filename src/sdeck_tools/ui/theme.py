"""Application theming.

``dark`` and ``light`` use qdarktheme when it is installed and fall back
to a Fusion palette otherwise; ``system`` keeps the platform palette.
Either way the editor's own stylesheet (slot cards, drop zones, file
rows, badges) is layered on top, coloured from the ``night``/``accent``
palette of the SDeckTools site.
"""

from __future__ import annotations

from string import Template
from typing import Any, cast

from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

try:
    import qdarktheme  # type: ignore[import-not-found]
except Exception:  # pragma: no cover - optional runtime dependency
    qdarktheme = None  # type: ignore[assignment]


THEMES = ("system", "dark", "light")

ACCENT = "#3b82f6"
NIGHT = "#1e293b"

DARK = {
    "window": "#0f172a",
    "card": NIGHT,
    "row": "#273449",
    "field": "#172033",
    "text": "#ffffff",
    "muted": "#94a3b8",
    "line": "#334155",
    "line_strong": "#475569",
    "accent": ACCENT,
    "accent_hi": "#60a5fa",
    "ok": "#31d0aa",
    "warn": "#f59e42",
    "bad": "#dc2626",
}

LIGHT = {
    "window": "#eef2f7",
    "card": "#ffffff",
    "row": "#f8fafc",
    "field": "#ffffff",
    "text": "#0f172a",
    "muted": "#64748b",
    "line": "#d7dee8",
    "line_strong": "#c3cfdb",
    "accent": ACCENT,
    "accent_hi": "#2563eb",
    "ok": "#059669",
    "warn": "#d97706",
    "bad": "#dc2626",
}

_FUSION_ROLES = {
    "dark": {
        "Window": DARK["window"],
        "WindowText": DARK["text"],
        "Base": DARK["field"],
        "AlternateBase": DARK["card"],
        "Text": DARK["text"],
        "Button": DARK["card"],
        "ButtonText": DARK["text"],
        "Highlight": ACCENT,
        "HighlightedText": "#ffffff",
    },
    "light": {
        "Window": LIGHT["card"],
        "WindowText": "#000000",
        "Base": LIGHT["field"],
        "AlternateBase": "#f1f5f9",
        "Text": "#000000",
        "Button": LIGHT["row"],
        "ButtonText": "#000000",
        "Highlight": ACCENT,
        "HighlightedText": "#ffffff",
    },
}

_EDITOR_QSS = Template(
    """
QMainWindow#AppWindow, QWidget#RootShell { background: $window; }
QFrame#TopBar, QFrame#CardFrame {
    background: $card;
    border: 1px solid $line;
    border-radius: 12px;
}
QLabel#AppTitle { color: $text; font-size: 24px; font-weight: 700; }
QLabel#SectionTitle { color: $text; font-size: 15px; font-weight: 600; }
QLabel#AppSubtitle, QLabel#MutedLabel, QLabel#FieldHint { color: $muted; font-size: 11px; }
QLabel#TimeLabel { color: $accent_hi; font-size: 10px; }
QLabel#AdvisoryBanner {
    color: $text;
    background: $row;
    border-left: 4px solid $bad;
    padding: 6px 10px;
}
QLabel#SizeChip, QLabel#CountChip {
    color: $muted;
    border: 1px solid $line_strong;
    border-radius: 9px;
    padding: 2px 10px;
}
QLabel#StatusBadge {
    color: $muted;
    background: $row;
    border: 1px solid $line_strong;
    border-radius: 11px;
    padding: 4px 10px;
    font-weight: 600;
}
QLabel#StatusBadge[badgeKind="running"] { color: $accent; border-color: $accent; }
QLabel#StatusBadge[badgeKind="success"] { color: $ok; border-color: $ok; }
QLabel#StatusBadge[badgeKind="warning"] { color: $warn; border-color: $warn; }
QLabel#StatusBadge[badgeKind="danger"] { color: $bad; border-color: $bad; }
QFrame#DropZone {
    background: $row;
    border: 3px dashed $line_strong;
    border-radius: 10px;
}
QFrame#DropZone[dragActive="true"] { border-color: $accent; }
QFrame#FileRow { background: $row; border-left: 4px solid transparent; }
QFrame#FileRow:hover { border-left-color: $accent; }
QLineEdit, QComboBox, QPlainTextEdit {
    background: $field;
    color: $text;
    border: 1px solid $line;
    border-radius: 8px;
    padding: 6px 8px;
}
QLineEdit:focus, QComboBox:focus, QPlainTextEdit:focus { border-color: $accent; }
QPushButton {
    background: $row;
    color: $text;
    border: 1px solid $line;
    border-radius: 8px;
    padding: 7px 12px;
}
QPushButton:disabled { color: $muted; }
QPushButton[role="primary"] { background: $accent; border-color: $accent; color: $window; font-weight: 600; }
QPushButton[role="primary"]:hover { background: $accent_hi; }
QPushButton[role="ghost"] { background: transparent; }
QPushButton[role="danger"]:hover { color: $bad; border-color: $bad; }
QScrollArea { border: none; background: transparent; }
"""
)


def _fusion_palette(app: QApplication, theme: str) -> None:
    app.setStyle("Fusion")
    roles = _FUSION_ROLES.get(theme)
    if roles is None:
        app.setPalette(app.style().standardPalette())
        return
    palette = QPalette()
    for role_name, color in roles.items():
        palette.setColor(getattr(QPalette.ColorRole, role_name), QColor(color))
    app.setPalette(palette)


def _system_colors(app: QApplication) -> dict[str, str]:
    palette = app.palette()
    colors = dict(LIGHT)
    colors.update(
        window=palette.color(QPalette.ColorRole.Window).name(),
        card=palette.color(QPalette.ColorRole.Base).name(),
        row=palette.color(QPalette.ColorRole.AlternateBase).name(),
        field=palette.color(QPalette.ColorRole.Base).name(),
        text=palette.color(QPalette.ColorRole.WindowText).name(),
    )
    return colors


def _base_sheet(app: QApplication, theme: str) -> str:
    """Install the base look for ``theme`` and return its stylesheet, if any."""
    if theme == "system" or qdarktheme is None:
        _fusion_palette(app, theme)
        return ""
    qdt = cast(Any, qdarktheme)
    try:
        if hasattr(qdt, "setup_theme"):
            qdt.setup_theme(theme, custom_colors={"primary": ACCENT})
            return app.styleSheet()
        # qdarktheme < 2.0
        app.setPalette(qdt.load_palette(theme))
        return str(qdt.load_stylesheet(theme))
    except Exception:
        _fusion_palette(app, theme)
        return ""


def apply_app_theme(app: QApplication, theme: str) -> None:
    if theme not in THEMES:
        theme = "system"
    base = _base_sheet(app, theme)
    if theme == "system":
        colors = _system_colors(app)
    else:
        colors = DARK if theme == "dark" else LIGHT
    app.setStyleSheet(base + "\n" + _EDITOR_QSS.substitute(colors))
