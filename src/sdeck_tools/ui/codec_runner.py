from __future__ import annotations

import threading
from typing import Any, Callable

from PySide6.QtCore import QObject, Signal


class CodecRunner(QObject):
    """Run an import or export in a background thread and emit a completion signal.

    ``finished`` carries the job's return value and an error message; the
    message is empty on success.
    """

    finished = Signal(object, str)
    logLine = Signal(str)

    def __init__(self, job: Callable[[], Any], label: str) -> None:
        super().__init__()
        self.job = job
        self.label = label

    def start(self) -> None:
        thread = threading.Thread(target=self._run, daemon=True)
        thread.start()

    def _run(self) -> None:
        self.logLine.emit(f"{self.label} started")
        try:
            result = self.job()
        except Exception as exc:
            self.finished.emit(None, str(exc) or exc.__class__.__name__)
            return
        self.finished.emit(result, "")
