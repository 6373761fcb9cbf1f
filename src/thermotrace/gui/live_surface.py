"""Qt presentation surface fed from the ingestion thread."""

from __future__ import annotations

import threading
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..core.models import Reading


class QtLiveSurface(QObject):
    """Hand readings to the GUI thread through queued Qt signals.

    ``schedule`` is called on the ingestion thread and only emits; every
    connected slot runs on the thread that owns the receiver, so widgets are
    never touched from the reader.
    """

    reading_ready = Signal(object)  # Reading
    ingest_failed = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._accepting = threading.Event()
        self._latest: Optional[Reading] = None
        self._lock = threading.Lock()

    def schedule(self, reading: Reading) -> None:
        with self._lock:
            self._latest = reading
        self.reading_ready.emit(reading)

    def is_accepting(self) -> bool:
        return self._accepting.is_set()

    def set_accepting(self, accepting: bool) -> None:
        if accepting:
            self._accepting.set()
        else:
            self._accepting.clear()

    def latest(self) -> Optional[Reading]:
        with self._lock:
            return self._latest

    def report_failure(self, exc: BaseException) -> None:
        """Failure callback for :class:`~thermotrace.core.lifecycle.IngestController`."""
        self.ingest_failed.emit(str(exc))
