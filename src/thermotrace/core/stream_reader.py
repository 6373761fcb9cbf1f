"""
Ingestion loop: pull raw chunks from a byte source, frame them into lines,
parse each line into a reading and fan it out through a :class:`Pipeline`.

This is intended to run on a dedicated background thread (see
:mod:`thermotrace.core.lifecycle`). The byte source read is the only blocking
call; everything downstream is synchronous.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Protocol

from ..sensors.temperature_probe import parse_reading
from ..tools.debug import debug_enabled
from .errors import ByteSourceFailure
from .framing import FrameDecoder
from .models import IngestStats, Reading
from .pipeline import Pipeline

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024

LineParser = Callable[[bytes], Reading]


class ByteSource(Protocol):
    """Blocking byte stream such as an open serial port.

    ``read`` returns an empty ``bytes`` object at end of stream. Sources may
    also offer ``cancel_read()`` to unblock a pending read from another thread.
    """

    def read(self, size: int) -> bytes:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...


def close_source(source: ByteSource) -> None:
    """Close ``source``, logging (not raising) any failure."""
    try:
        source.close()
    except Exception:
        logger.exception("Failed to close byte source %r", source)


def reader_loop(
    source: ByteSource,
    decoder: FrameDecoder,
    pipeline: Pipeline,
    *,
    stop_event: threading.Event,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    parser: LineParser = parse_reading,
    stats: Optional[IngestStats] = None,
) -> IngestStats:
    """
    Read from ``source`` until end of stream or until ``stop_event`` is set.

    Parse, log, and framing errors are fatal and propagate; read errors are
    raised as :class:`ByteSourceFailure` unless a stop was already requested,
    in which case the aborted read ends the loop quietly. The source is
    closed before returning.
    """
    stats = stats if stats is not None else IngestStats()
    debug_on = debug_enabled()
    debug_start = time.perf_counter()
    debug_last_log = debug_start

    try:
        while not stop_event.is_set():
            try:
                chunk = source.read(chunk_size)
            except Exception as exc:
                if stop_event.is_set():
                    logger.debug("Read aborted by shutdown: %s", exc)
                    break
                raise ByteSourceFailure(f"Byte source read failed: {exc}") from exc

            if not chunk:
                logger.info("Byte source reached end of stream")
                break
            # Bytes that arrive after a stop request are not processed.
            if stop_event.is_set():
                break

            stats.chunks += 1
            stats.bytes_read += len(chunk)
            for line in decoder.feed(chunk):
                stats.lines += 1
                reading = parser(line)
                pipeline.handle_reading(reading)
                stats.readings += 1
            decoder.check_overrun()

            if debug_on:
                perf_now = time.perf_counter()
                if perf_now - debug_last_log >= 5.0:
                    elapsed = max(1e-9, perf_now - debug_start)
                    logger.debug(
                        "ingest chunks=%d bytes=%d readings=%d avg≈%.2f readings/s pending=%d",
                        stats.chunks,
                        stats.bytes_read,
                        stats.readings,
                        stats.readings / elapsed,
                        decoder.pending,
                    )
                    debug_last_log = perf_now
    finally:
        close_source(source)
        logger.info("Closed byte source after %d readings", stats.readings)

    return stats
