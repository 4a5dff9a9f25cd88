from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, cast

from PySide6.QtCore import QSignalBlocker, Signal
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from sdeck_tools.catalog import Slot, SlotCatalog, load_catalog
from sdeck_tools.codec import ImportResult
from sdeck_tools.config_service import ConfigService
from sdeck_tools.model import PackError, format_file_size
from sdeck_tools.session import PackSession
from sdeck_tools.ui.codec_runner import CodecRunner
from sdeck_tools.ui.state import EditorState
from sdeck_tools.ui.theme import THEMES, apply_app_theme
from sdeck_tools.ui.widgets import CardFrame, SlotCard, StatusBadge, set_widget_role

IMPORT_CONFIRMATION = (
    "Importing a new ZIP file will replace your current project. Are you sure you want to continue?"
)


class PackEditorWindow(QMainWindow):
    # Session log lines may come from the runner thread.
    sessionLogLine = Signal(str)

    def __init__(self) -> None:
        super().__init__()
        self.setObjectName("AppWindow")
        self.setWindowTitle("SDeck Tools")
        self.resize(1180, 820)
        self.setMinimumSize(960, 680)

        self.app_dir = Path(__file__).resolve().parents[2]
        self.config_service = ConfigService(app_dir=self.app_dir)
        self.config: dict[str, Any] = self.config_service.load_settings()
        self.state = EditorState.from_config(self.config)
        self.default_sounds_dir = self.config_service.default_sounds_dir(self.config)
        self.catalog = self._load_catalog()
        self.session = PackSession.from_settings(
            self.config,
            self.catalog,
            log_callback=self.sessionLogLine.emit,
        )

        self.codec_runner: Optional[CodecRunner] = None
        self._runner_label = ""
        self._runner_done: Optional[Callable[[Any], None]] = None
        self._slots_stretch_added = False
        self.slot_cards: dict[str, SlotCard] = {}

        self._build_shell()
        self._build_metadata_card()
        self._build_slot_cards()
        self._sync_metadata_fields()
        self._sync_theme_controls(self.state.theme)
        self._apply_theme_only(self.state.theme)
        self._set_status("Ready", kind="neutral", pulsing=False)
        self.sessionLogLine.connect(self.on_session_log_line)

    def _load_catalog(self) -> SlotCatalog:
        catalog_path = self.config.get("catalog_path")
        try:
            return load_catalog(Path(catalog_path) if catalog_path else None)
        except (OSError, ValueError) as exc:
            QMessageBox.warning(self, "Slot catalog", f"Could not load {catalog_path}: {exc}\nUsing the built-in catalog.")
            return load_catalog()

    # ------------------------------------------------------------------
    # UI shell
    def _build_shell(self) -> None:
        root = QWidget()
        root.setObjectName("RootShell")
        self.setCentralWidget(root)

        root_layout = QVBoxLayout(root)
        root_layout.setContentsMargins(16, 16, 16, 16)
        root_layout.setSpacing(12)

        self.top_bar = QFrame()
        self.top_bar.setObjectName("TopBar")
        top_layout = QHBoxLayout(self.top_bar)
        top_layout.setContentsMargins(14, 12, 14, 12)
        top_layout.setSpacing(12)

        title_text = QWidget()
        title_text_layout = QVBoxLayout(title_text)
        title_text_layout.setContentsMargins(0, 0, 0, 0)
        title_text_layout.setSpacing(0)
        app_title = QLabel("SDeckTools")
        app_title.setObjectName("AppTitle")
        app_subtitle = QLabel("Create SFX Packs · For SteamOS & Big Picture")
        app_subtitle.setObjectName("AppSubtitle")
        title_text_layout.addWidget(app_title)
        title_text_layout.addWidget(app_subtitle)
        top_layout.addWidget(title_text)
        top_layout.addStretch(1)

        self.import_btn = QPushButton("Import zip")
        set_widget_role(self.import_btn, "primary")
        self.import_btn.clicked.connect(self.import_zip)
        top_layout.addWidget(self.import_btn)

        self.header_theme_combo = QComboBox()
        self.header_theme_combo.addItems(list(THEMES))
        self.header_theme_combo.currentTextChanged.connect(self.on_theme_changed)
        top_layout.addWidget(self.header_theme_combo)

        self.header_status_badge = StatusBadge("Ready")
        top_layout.addWidget(self.header_status_badge)

        root_layout.addWidget(self.top_bar)

        body = QWidget()
        self.body_layout = QHBoxLayout(body)
        self.body_layout.setContentsMargins(0, 0, 0, 0)
        self.body_layout.setSpacing(16)
        root_layout.addWidget(body, 1)

        self.footer_label = QLabel("")
        self.footer_label.setObjectName("MutedLabel")
        root_layout.addWidget(self.footer_label)

    def _build_metadata_card(self) -> None:
        card = CardFrame("Pack.json Settings", "Written to pack.json when the pack is exported.")
        card.setFixedWidth(380)
        form = QFormLayout()
        form.setContentsMargins(0, 0, 0, 0)
        form.setSpacing(10)

        self.name_edit = QLineEdit()
        self.name_edit.editingFinished.connect(lambda: self.on_metadata_changed("name", self.name_edit.text()))
        form.addRow("Name", self.name_edit)

        self.description_edit = QPlainTextEdit()
        self.description_edit.setFixedHeight(80)
        self.description_edit.textChanged.connect(
            lambda: self.on_metadata_changed("description", self.description_edit.toPlainText())
        )
        form.addRow("Description", self.description_edit)

        self.author_edit = QLineEdit()
        self.author_edit.editingFinished.connect(lambda: self.on_metadata_changed("author", self.author_edit.text()))
        form.addRow("Author", self.author_edit)

        self.version_edit = QLineEdit()
        self.version_edit.editingFinished.connect(lambda: self.on_metadata_changed("version", self.version_edit.text()))
        form.addRow("Version", self.version_edit)

        self.music_checkbox = QCheckBox("Music pack")
        self.music_checkbox.toggled.connect(lambda checked: self.on_metadata_changed("music", checked))
        form.addRow("", self.music_checkbox)
        card.body_layout.addLayout(form)

        buttons = QHBoxLayout()
        buttons.setContentsMargins(0, 0, 0, 0)
        buttons.addStretch(1)
        self.export_manifest_btn = QPushButton("Export pack.json")
        set_widget_role(self.export_manifest_btn, "primary")
        self.export_manifest_btn.clicked.connect(self.export_manifest)
        buttons.addWidget(self.export_manifest_btn)
        self.export_zip_btn = QPushButton("Export zip")
        set_widget_role(self.export_zip_btn, "primary")
        self.export_zip_btn.clicked.connect(self.export_zip)
        buttons.addWidget(self.export_zip_btn)
        card.body_layout.addLayout(buttons)
        card.body_layout.addStretch(1)

        self.body_layout.addWidget(card, 0)

    def _build_slot_cards(self) -> None:
        column = QWidget()
        self.slots_layout = QVBoxLayout(column)
        self.slots_layout.setContentsMargins(0, 0, 0, 0)
        self.slots_layout.setSpacing(12)

        self.advisory_label = QLabel("")
        self.advisory_label.setObjectName("AdvisoryBanner")
        self.advisory_label.setWordWrap(True)
        self.advisory_label.hide()
        self.slots_layout.addWidget(self.advisory_label)

        for slot in self.catalog:
            self._add_slot_card(slot)
        self.slots_layout.addStretch(1)
        self._slots_stretch_added = True

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(column)
        self.body_layout.addWidget(scroll, 1)

    def _add_slot_card(self, slot: Slot) -> SlotCard:
        card = SlotCard(slot, self.default_sounds_dir)
        card.filesAdded.connect(self.add_files)
        card.browseRequested.connect(self.browse_files)
        card.removeRequested.connect(self.remove_file)
        card.removeAllRequested.connect(self.remove_all)
        card.set_entries([])
        # Keep the trailing stretch last.
        index = self.slots_layout.count() - (1 if self._slots_stretch_added else 0)
        self.slots_layout.insertWidget(index, card)
        self.slot_cards[slot.slot_id] = card
        return card

    # ------------------------------------------------------------------
    # Config persistence
    def save_setting(self, key: str, value: Any) -> None:
        self.config[key] = value
        try:
            self.config_service.save_settings(self.config)
        except Exception:
            pass

    def _remember_directory(self, path: str) -> None:
        directory = str(Path(path).parent)
        if directory and directory != self.state.last_directory:
            self.state.last_directory = directory
            self.save_setting("last_directory", directory)

    def _start_directory(self) -> str:
        if self.state.last_directory and Path(self.state.last_directory).is_dir():
            return self.state.last_directory
        return str(Path.home())

    # ------------------------------------------------------------------
    # Theme handling
    def _sync_theme_controls(self, theme: str) -> None:
        idx = self.header_theme_combo.findText(theme)
        if idx >= 0:
            with QSignalBlocker(self.header_theme_combo):
                self.header_theme_combo.setCurrentIndex(idx)

    def _apply_theme_only(self, theme: str) -> None:
        app_instance = QApplication.instance()
        if app_instance is None:
            return
        app = cast(QApplication, app_instance)
        apply_app_theme(app, theme)

    def on_theme_changed(self, theme: str) -> None:
        if theme not in THEMES:
            theme = "system"
        self.state.theme = theme
        self._sync_theme_controls(theme)
        self._apply_theme_only(theme)
        self.save_setting("theme", theme)

    # ------------------------------------------------------------------
    # Metadata
    def _sync_metadata_fields(self) -> None:
        metadata = self.session.metadata
        with QSignalBlocker(self.name_edit):
            self.name_edit.setText(metadata.name)
        with QSignalBlocker(self.description_edit):
            self.description_edit.setPlainText(metadata.description)
        with QSignalBlocker(self.author_edit):
            self.author_edit.setText(metadata.author)
        with QSignalBlocker(self.version_edit):
            self.version_edit.setText(metadata.version)
        with QSignalBlocker(self.music_checkbox):
            self.music_checkbox.setChecked(metadata.music)

    def on_metadata_changed(self, name: str, value: Any) -> None:
        self._guarded("Pack settings", lambda: self.session.update_metadata(name, value))

    # ------------------------------------------------------------------
    # Slot editing
    def _guarded(self, title: str, action: Callable[[], Any]) -> Any:
        try:
            return action()
        except PackError as exc:
            QMessageBox.warning(self, title, str(exc))
        except OSError as exc:
            QMessageBox.warning(self, title, f"File error: {exc}")
        return None

    def _refresh_slot(self, slot: str, animate_new: bool = False) -> None:
        card = self.slot_cards.get(slot)
        if card is None:
            known = self.catalog.get(slot) or Slot(slot_id=slot)
            card = self._add_slot_card(known)
        card.set_entries(self.session.model.slot_entries(slot), animate_new=animate_new)
        self._update_footer()

    def _refresh_all_slots(self) -> None:
        for slot in self.session.mapping:
            self._refresh_slot(slot)
        for slot, card in self.slot_cards.items():
            if slot not in self.session.mapping:
                card.set_entries([])
        self._update_footer()

    def _update_footer(self) -> None:
        model = self.session.model
        self.footer_label.setText(
            f"{model.entry_count()} file(s) · {format_file_size(model.total_bytes())}"
        )

    def _show_advisory(self, message: str) -> None:
        self.advisory_label.setText(message)
        self.advisory_label.setVisible(bool(message))

    def add_files(self, slot: str, paths: list) -> None:
        result = self._guarded("Add files", lambda: self.session.add_files(slot, paths))
        if result is None:
            return
        if paths:
            self._remember_directory(str(paths[0]))
        self._show_advisory(result.advisory)
        self._refresh_slot(slot, animate_new=True)

    def browse_files(self, slot: str) -> None:
        files, _ = QFileDialog.getOpenFileNames(
            self, "Add files", self._start_directory(), f"{self.state.file_filter()};;All files (*)"
        )
        if files:
            self.add_files(slot, [Path(f) for f in files])

    def remove_file(self, slot: str, name: str) -> None:
        card = self.slot_cards.get(slot)
        if card is not None:
            card.clear_rows()
        self._guarded("Remove file", lambda: self.session.remove_file(slot, name))
        self._refresh_slot(slot)

    def remove_all(self, slot: str) -> None:
        card = self.slot_cards.get(slot)
        if card is not None:
            card.clear_rows()
        self._guarded("Remove files", lambda: self.session.remove_all(slot))
        self._refresh_slot(slot)

    # ------------------------------------------------------------------
    # Import / export
    def _set_status(self, text: str, kind: str, pulsing: bool) -> None:
        self.header_status_badge.set_status(text, kind=kind, pulsing=pulsing)

    def _set_busy(self, busy: bool) -> None:
        for widget in (
            self.import_btn,
            self.export_manifest_btn,
            self.export_zip_btn,
            self.name_edit,
            self.description_edit,
            self.author_edit,
            self.version_edit,
            self.music_checkbox,
        ):
            widget.setEnabled(not busy)
        for card in self.slot_cards.values():
            card.set_editable(not busy)

    def _start_runner(self, label: str, job: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        self._set_busy(True)
        self._set_status(label, kind="running", pulsing=True)
        self._runner_label = label
        self._runner_done = on_done
        self.codec_runner = CodecRunner(job, label)
        self.codec_runner.logLine.connect(self.on_session_log_line)
        self.codec_runner.finished.connect(self.on_runner_finished)
        self.codec_runner.start()

    def on_runner_finished(self, result: Any, error: str) -> None:
        label, on_done = self._runner_label, self._runner_done
        self._set_busy(False)
        self.codec_runner = None
        self._runner_done = None
        if error:
            # Rows were torn down before an import; the old pack is still in place.
            self._refresh_all_slots()
            self._set_status(f"{label} failed", kind="danger", pulsing=False)
            QMessageBox.warning(self, label, error)
            return
        if on_done is not None:
            on_done(result)

    def on_session_log_line(self, line: str) -> None:
        self.statusBar().showMessage(line, 5000)

    def import_zip(self) -> None:
        reply = QMessageBox.question(
            self,
            "Import zip",
            IMPORT_CONFIRMATION,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        path, _ = QFileDialog.getOpenFileName(self, "Import zip", self._start_directory(), "ZIP archives (*.zip)")
        if not path:
            return
        self._remember_directory(path)
        for card in self.slot_cards.values():
            card.clear_rows()
        self._start_runner("Import", lambda: self.session.import_archive(Path(path)), self._on_import_done)

    def _on_import_done(self, result: ImportResult) -> None:
        self._refresh_all_slots()
        self._sync_metadata_fields()
        self._show_advisory("")
        if result.dropped_count:
            self._set_status("Imported with warnings", kind="warning", pulsing=False)
            missing = "\n".join(f"{slot}: {name}" for slot, name in result.dropped)
            QMessageBox.information(
                self,
                "Import zip",
                f"{result.dropped_count} file(s) listed in pack.json were not found in the archive:\n{missing}",
            )
        else:
            self._set_status("Imported", kind="success", pulsing=False)

    def export_zip(self) -> None:
        default_name = str(self.config.get("archive_filename") or "audio_pack.zip")
        dest, _ = QFileDialog.getSaveFileName(
            self, "Export zip", str(Path(self._start_directory()) / default_name), "ZIP archives (*.zip)"
        )
        if not dest:
            return
        self._remember_directory(dest)
        self._start_runner(
            "Export",
            lambda: self.session.export_archive(Path(dest)),
            lambda written: self._set_status(f"Saved {Path(written).name}", kind="success", pulsing=False),
        )

    def export_manifest(self) -> None:
        default_name = str(self.config.get("manifest_filename") or "config.json")
        dest, _ = QFileDialog.getSaveFileName(
            self, "Export pack.json", str(Path(self._start_directory()) / default_name), "JSON files (*.json)"
        )
        if not dest:
            return
        self._remember_directory(dest)
        written = self._guarded("Export pack.json", lambda: self.session.export_manifest(Path(dest)))
        if written is not None:
            self._set_status(f"Saved {Path(written).name}", kind="success", pulsing=False)

    def closeEvent(self, event: Any) -> None:  # type: ignore[override]
        for card in self.slot_cards.values():
            card.stop_default()
            card.clear_rows()
        self.session.close()
        super().closeEvent(event)
