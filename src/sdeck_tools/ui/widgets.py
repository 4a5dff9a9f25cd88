from __future__ import annotations

from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, QUrl, Signal
from PySide6.QtGui import QDragEnterEvent, QDragLeaveEvent, QDropEvent, QMouseEvent
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from sdeck_tools.catalog import Slot
from sdeck_tools.model import FileEntry, format_duration, format_file_size
from sdeck_tools.ui.animations import fade_in, pulse_opacity, stop_pulse


def repolish(widget: QWidget) -> None:
    style = widget.style()
    style.unpolish(widget)
    style.polish(widget)
    widget.update()


def set_widget_role(button: QPushButton, role: str) -> None:
    button.setProperty("role", role)
    repolish(button)


class CardFrame(QFrame):
    """Reusable elevated card container."""

    def __init__(self, title: str | None = None, subtitle: str | None = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("CardFrame")
        layout = QVBoxLayout(self)
        layout.setContentsMargins(18, 16, 18, 16)
        layout.setSpacing(12)
        self.layout_root = layout

        self._title_label: Optional[QLabel] = None
        if title:
            title_label = QLabel(title)
            title_label.setObjectName("SectionTitle")
            self._title_label = title_label
            layout.addWidget(title_label)
        if subtitle:
            subtitle_label = QLabel(subtitle)
            subtitle_label.setObjectName("FieldHint")
            subtitle_label.setWordWrap(True)
            layout.addWidget(subtitle_label)

        self.body_layout = QVBoxLayout()
        self.body_layout.setContentsMargins(0, 0, 0, 0)
        self.body_layout.setSpacing(12)
        layout.addLayout(self.body_layout)


class StatusBadge(QLabel):
    def __init__(self, text: str = "Ready", parent: Optional[QWidget] = None) -> None:
        super().__init__(text, parent)
        self.setObjectName("StatusBadge")
        self.set_status(text, kind="neutral", pulsing=False)

    def set_status(self, text: str, kind: str = "neutral", pulsing: bool = False) -> None:
        self.setText(text)
        self.setProperty("badgeKind", kind)
        repolish(self)
        if pulsing:
            pulse_opacity(self)
        else:
            stop_pulse(self)


class DropZone(QFrame):
    """Dashed target accepting dropped files; clicking opens a file picker."""

    filesDropped = Signal(list)
    browseRequested = Signal()

    def __init__(self, text: str = "Drag & drop files here or click to browse", parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("DropZone")
        self.setAcceptDrops(True)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setProperty("dragActive", "false")
        self.setMinimumHeight(72)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        label = QLabel(text)
        label.setObjectName("MutedLabel")
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(label)

    def _set_drag_active(self, active: bool) -> None:
        self.setProperty("dragActive", "true" if active else "false")
        repolish(self)

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:  # type: ignore[override]
        if event.mimeData().hasUrls():
            self._set_drag_active(True)
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragLeaveEvent(self, event: QDragLeaveEvent) -> None:  # type: ignore[override]
        self._set_drag_active(False)
        super().dragLeaveEvent(event)

    def dropEvent(self, event: QDropEvent) -> None:  # type: ignore[override]
        self._set_drag_active(False)
        paths = [Path(url.toLocalFile()) for url in event.mimeData().urls() if url.isLocalFile()]
        paths = [path for path in paths if path.is_file()]
        if paths:
            self.filesDropped.emit(paths)
        event.acceptProposedAction()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self.browseRequested.emit()
        super().mouseReleaseEvent(event)


class FileRow(QFrame):
    """One slot entry: name, size, inline player and a remove button."""

    removeRequested = Signal(str)

    def __init__(self, entry: FileEntry, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("FileRow")
        self.entry_name = entry.name

        layout = QHBoxLayout(self)
        layout.setContentsMargins(10, 6, 10, 6)
        layout.setSpacing(10)

        self.play_btn = QPushButton("Play")
        set_widget_role(self.play_btn, "ghost")
        self.play_btn.clicked.connect(self.toggle_playback)
        layout.addWidget(self.play_btn)

        name_label = QLabel(entry.name)
        name_label.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        layout.addWidget(name_label, 1)

        scrubber = QVBoxLayout()
        scrubber.setContentsMargins(0, 0, 0, 0)
        scrubber.setSpacing(0)
        self.position_slider = QSlider(Qt.Orientation.Horizontal)
        self.position_slider.setRange(0, 0)
        self.position_slider.setFixedWidth(140)
        self.position_slider.sliderMoved.connect(self._seek)
        scrubber.addWidget(self.position_slider)
        times = QHBoxLayout()
        times.setContentsMargins(0, 0, 0, 0)
        self.position_label = QLabel(format_duration(0))
        self.position_label.setObjectName("TimeLabel")
        self.duration_label = QLabel(format_duration(0))
        self.duration_label.setObjectName("TimeLabel")
        times.addWidget(self.position_label)
        times.addStretch(1)
        times.addWidget(self.duration_label)
        scrubber.addLayout(times)
        layout.addLayout(scrubber)

        size_label = QLabel(format_file_size(entry.size_bytes))
        size_label.setObjectName("SizeChip")
        layout.addWidget(size_label)

        remove_btn = QPushButton("Remove")
        set_widget_role(remove_btn, "danger")
        remove_btn.clicked.connect(lambda: self.removeRequested.emit(self.entry_name))
        layout.addWidget(remove_btn)

        # The player reads the spooled copy, never the user's original file.
        self.audio_output = QAudioOutput(self)
        self.player = QMediaPlayer(self)
        self.player.setAudioOutput(self.audio_output)
        self.player.setSource(QUrl.fromLocalFile(str(entry.handle.path)))
        self.player.durationChanged.connect(self._on_duration_changed)
        self.player.positionChanged.connect(self._on_position_changed)
        self.player.playbackStateChanged.connect(self._on_state_changed)

    def toggle_playback(self) -> None:
        if self.player.playbackState() == QMediaPlayer.PlaybackState.PlayingState:
            self.player.pause()
        else:
            self.player.play()

    def stop(self) -> None:
        self.player.stop()
        self.player.setSource(QUrl())

    def _seek(self, position: int) -> None:
        self.player.setPosition(position)

    def _on_duration_changed(self, duration: int) -> None:
        self.position_slider.setRange(0, int(duration))
        self.duration_label.setText(format_duration(duration))

    def _on_position_changed(self, position: int) -> None:
        self.position_label.setText(format_duration(position))
        if not self.position_slider.isSliderDown():
            self.position_slider.setValue(int(position))

    def _on_state_changed(self, state: QMediaPlayer.PlaybackState) -> None:
        playing = state == QMediaPlayer.PlaybackState.PlayingState
        self.play_btn.setText("Pause" if playing else "Play")


class SlotCard(CardFrame):
    """Card for one slot: description, drop zone and the current entries."""

    filesAdded = Signal(str, list)
    browseRequested = Signal(str)
    removeRequested = Signal(str, str)
    removeAllRequested = Signal(str)

    def __init__(
        self,
        slot: Slot,
        default_sounds_dir: Optional[Path] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(slot.display_title, slot.description or None, parent)
        self.slot_id = slot.slot_id
        self._rows: list[FileRow] = []
        self.default_sound: Optional[Path] = None
        if default_sounds_dir is not None:
            candidate = Path(default_sounds_dir) / slot.slot_id
            if candidate.is_file():
                self.default_sound = candidate
        self._default_output: Optional[QAudioOutput] = None
        self._default_player: Optional[QMediaPlayer] = None

        header = QHBoxLayout()
        header.setContentsMargins(0, 0, 0, 0)
        header.setSpacing(8)
        id_label = QLabel(slot.slot_id)
        id_label.setObjectName("MutedLabel")
        header.addWidget(id_label)
        self.default_btn = QPushButton("Default")
        set_widget_role(self.default_btn, "ghost")
        self.default_btn.setEnabled(self.default_sound is not None)
        if self.default_sound is not None:
            self.default_btn.setToolTip(f"Play the stock sound: {self.default_sound}")
        else:
            self.default_btn.setToolTip("No stock sound for this slot")
        self.default_btn.clicked.connect(self.toggle_default)
        header.addWidget(self.default_btn)
        header.addStretch(1)
        self.count_label = QLabel("0 files")
        self.count_label.setObjectName("CountChip")
        header.addWidget(self.count_label)
        self.remove_all_btn = QPushButton("Remove all")
        set_widget_role(self.remove_all_btn, "danger")
        self.remove_all_btn.clicked.connect(lambda: self.removeAllRequested.emit(self.slot_id))
        header.addWidget(self.remove_all_btn)
        self.body_layout.addLayout(header)

        self.drop_zone = DropZone()
        self.drop_zone.filesDropped.connect(lambda paths: self.filesAdded.emit(self.slot_id, paths))
        self.drop_zone.browseRequested.connect(lambda: self.browseRequested.emit(self.slot_id))
        self.body_layout.addWidget(self.drop_zone)

        self.rows_layout = QVBoxLayout()
        self.rows_layout.setContentsMargins(0, 0, 0, 0)
        self.rows_layout.setSpacing(4)
        self.body_layout.addLayout(self.rows_layout)

    def toggle_default(self) -> None:
        """Play or pause the stock sound for this slot."""
        if self.default_sound is None:
            return
        if self._default_player is None:
            self._default_output = QAudioOutput(self)
            self._default_player = QMediaPlayer(self)
            self._default_player.setAudioOutput(self._default_output)
            self._default_player.setSource(QUrl.fromLocalFile(str(self.default_sound)))
            self._default_player.playbackStateChanged.connect(self._on_default_state_changed)
        if self._default_player.playbackState() == QMediaPlayer.PlaybackState.PlayingState:
            self._default_player.pause()
        else:
            self._default_player.play()

    def stop_default(self) -> None:
        if self._default_player is not None:
            self._default_player.stop()

    def _on_default_state_changed(self, state: QMediaPlayer.PlaybackState) -> None:
        playing = state == QMediaPlayer.PlaybackState.PlayingState
        self.default_btn.setText("Pause default" if playing else "Default")

    def set_entries(self, entries: list[FileEntry], animate_new: bool = False) -> None:
        known = {row.entry_name for row in self._rows}
        self.clear_rows()
        for entry in entries:
            row = FileRow(entry)
            row.removeRequested.connect(lambda name: self.removeRequested.emit(self.slot_id, name))
            self.rows_layout.addWidget(row)
            self._rows.append(row)
            if animate_new and entry.name not in known:
                fade_in(row)
        count = len(entries)
        self.count_label.setText(f"{count} file" if count == 1 else f"{count} files")
        self.remove_all_btn.setEnabled(count > 0)

    def clear_rows(self) -> None:
        for row in self._rows:
            row.stop()
            self.rows_layout.removeWidget(row)
            row.deleteLater()
        self._rows = []

    def set_editable(self, enabled: bool) -> None:
        self.drop_zone.setEnabled(enabled)
        self.remove_all_btn.setEnabled(enabled and bool(self._rows))
        for row in self._rows:
            row.setEnabled(enabled)
