"""Reading fan-out: durable log first, then the live display."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from queue import Empty, Full, Queue
from typing import List, Optional, Protocol

from ..dataio.csv_writer import format_value
from ..sensors.temperature_probe import is_safe
from .models import Reading

__all__ = [
    "ReadingRecorder",
    "PresentationSurface",
    "LiveSink",
    "QueueSurface",
    "NullSink",
    "Pipeline",
]

logger = logging.getLogger(__name__)


class ReadingRecorder(Protocol):
    """Durable sink interface (see :class:`~thermotrace.dataio.csv_writer.ReadingLog`)."""

    def record(self, reading: Reading) -> None:  # pragma: no cover - protocol
        ...


class PresentationSurface(Protocol):
    """Display-side collaborator that accepts readings from another thread."""

    def schedule(self, reading: Reading) -> None:  # pragma: no cover - protocol
        ...

    def is_accepting(self) -> bool:  # pragma: no cover - protocol
        ...


def _offer_queue(queue: Queue, item: object) -> None:
    """Best-effort put that drops the oldest payload when the queue is full."""
    try:
        queue.put_nowait(item)
    except Full:
        try:
            queue.get_nowait()
        except Empty:
            pass
        queue.put_nowait(item)


class QueueSurface:
    """Thread-safe presentation surface backed by a bounded queue.

    The ingestion thread only ever posts to the queue; the consumer drains
    it from its own thread. ``pause()`` closes the gate so new readings are
    dropped by :class:`LiveSink` instead of queued.
    """

    def __init__(self, maxsize: int = 256) -> None:
        self._queue: Queue[Reading] = Queue(maxsize=max(1, int(maxsize)))
        self._accepting = threading.Event()
        self._accepting.set()
        self._latest: Optional[Reading] = None
        self._lock = threading.Lock()

    def schedule(self, reading: Reading) -> None:
        with self._lock:
            self._latest = reading
        _offer_queue(self._queue, reading)

    def is_accepting(self) -> bool:
        return self._accepting.is_set()

    def pause(self) -> None:
        self._accepting.clear()

    def resume(self) -> None:
        self._accepting.set()

    def latest(self) -> Optional[Reading]:
        with self._lock:
            return self._latest

    def drain(self) -> List[Reading]:
        items: List[Reading] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except Empty:
                break
        return items


@dataclass(slots=True)
class LiveSink:
    """Forward readings to a presentation surface without ever blocking.

    Readings offered while the surface is not accepting are dropped, never
    replayed.
    """

    surface: PresentationSurface
    published: int = field(init=False, default=0)
    dropped: int = field(init=False, default=0)

    def publish(self, reading: Reading) -> None:
        try:
            if not self.surface.is_accepting():
                self.dropped += 1
                return
            self.surface.schedule(reading)
        except Exception:
            self.dropped += 1
            logger.exception("Live display rejected reading %r", reading)
            return
        self.published += 1


@dataclass(slots=True)
class NullSink:
    """No-op sink used when the log or the display is disabled."""

    def record(self, reading: Reading) -> None:  # pragma: no cover - trivial
        return

    def publish(self, reading: Reading) -> None:  # pragma: no cover - trivial
        return


@dataclass(slots=True)
class Pipeline:
    """Fan each reading out to the durable recorder and the live sink.

    The recorder runs first so the log never depends on the display; its
    errors propagate to the ingestion loop.
    """

    recorder: ReadingRecorder = field(default_factory=NullSink)
    live: LiveSink | NullSink = field(default_factory=NullSink)
    threshold: Optional[float] = None

    def handle_reading(self, reading: Reading) -> None:
        self.recorder.record(reading)
        self.live.publish(reading)
        if self.threshold is not None:
            mark = "✓" if is_safe(reading, self.threshold) else "⚠"
            logger.info("%s %s", mark, format_value(reading.value))
