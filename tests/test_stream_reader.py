from __future__ import annotations

import threading
from pathlib import Path

import pytest

from thermotrace.core.errors import ByteSourceFailure, DurableWriteFailure, FramingOverrun, ParseFailure
from thermotrace.core.framing import FrameDecoder
from thermotrace.core.models import Reading
from thermotrace.core.pipeline import LiveSink, Pipeline, QueueSurface
from thermotrace.core.stream_reader import reader_loop
from thermotrace.dataio.csv_writer import ReadingLog


class ChunkSource:
    """Byte source replaying fixed chunks, then end of stream."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.reads = 0
        self.closed = False

    def read(self, size: int) -> bytes:
        self.reads += 1
        if not self._chunks:
            return b""
        return self._chunks.pop(0)

    def close(self) -> None:
        self.closed = True


class FailingSource(ChunkSource):
    def read(self, size: int) -> bytes:
        raise OSError("device unplugged")


class ListRecorder:
    def __init__(self) -> None:
        self.rows: list[Reading] = []

    def record(self, reading: Reading) -> None:
        self.rows.append(reading)


def _run(source: ChunkSource, pipeline: Pipeline, stop_event: threading.Event | None = None, **kwargs):
    return reader_loop(
        source,
        FrameDecoder(kwargs.pop("max_buffer_bytes", None)),
        pipeline,
        stop_event=stop_event or threading.Event(),
        **kwargs,
    )


def test_garbage_line_skipped_and_rows_logged_in_order(tmp_path: Path) -> None:
    log = ReadingLog(tmp_path / "probe.csv")
    log.create()
    source = ChunkSource([b"garbage\r\n65.0\r\n70.5\r\n"])

    stats = _run(source, Pipeline(recorder=log))

    rows = (tmp_path / "probe.csv").read_text(encoding="utf-8").splitlines()[1:]
    assert [row.split(",")[1] for row in rows] == ["65.0", "70.5"]
    assert all(len(row.split(",")[0]) == len("HH:MM:SS") for row in rows)
    assert stats.readings == 2
    assert source.closed


def test_split_chunks_fan_out_to_both_sinks() -> None:
    recorder = ListRecorder()
    surface = QueueSurface()
    source = ChunkSource([b"6", b"3.1\r\n6", b"4.0\r", b"\n65.5\r\n"])

    _run(source, Pipeline(recorder=recorder, live=LiveSink(surface)), chunk_size=4)

    assert [r.value for r in recorder.rows] == [64.0, 65.5]
    assert surface.drain() == recorder.rows


def test_parse_failure_is_fatal_and_stops_ingestion() -> None:
    recorder = ListRecorder()
    source = ChunkSource([b"x\r\n65.2\r\nabc\r\n66.0\r\n", b"67.0\r\n"])

    with pytest.raises(ParseFailure):
        _run(source, Pipeline(recorder=recorder))

    assert [r.value for r in recorder.rows] == [pytest.approx(65.2)]
    assert source.reads == 1
    assert source.closed


def test_read_error_becomes_byte_source_failure() -> None:
    source = FailingSource([])
    with pytest.raises(ByteSourceFailure):
        _run(source, Pipeline())
    assert source.closed


def test_read_error_after_stop_request_is_a_clean_exit() -> None:
    stop_event = threading.Event()

    class InterruptedSource(ChunkSource):
        def read(self, size: int) -> bytes:
            stop_event.set()
            raise OSError("port closed underneath the reader")

    source = InterruptedSource([])
    stats = _run(source, Pipeline(), stop_event)
    assert stats.readings == 0
    assert source.closed


def test_durable_write_failure_is_fatal(tmp_path: Path) -> None:
    log = ReadingLog(tmp_path / "gone" / "probe.csv")
    surface = QueueSurface()
    source = ChunkSource([b"x\r\n65.0\r\n"])

    with pytest.raises(DurableWriteFailure):
        _run(source, Pipeline(recorder=log, live=LiveSink(surface)))
    # The live display never sees a reading the log did not keep.
    assert surface.drain() == []


def test_stop_event_prevents_further_reads() -> None:
    stop_event = threading.Event()
    stop_event.set()
    source = ChunkSource([b"x\r\n65.0\r\n"])

    _run(source, Pipeline(), stop_event)

    assert source.reads == 0
    assert source.closed


def test_chunk_arriving_after_stop_is_discarded() -> None:
    stop_event = threading.Event()
    recorder = ListRecorder()

    class StoppingSource(ChunkSource):
        def read(self, size: int) -> bytes:
            data = super().read(size)
            if self.reads == 2:
                stop_event.set()
            return data

    source = StoppingSource([b"x\r\n1.0\r\n", b"2.0\r\n", b"3.0\r\n"])
    stats = _run(source, Pipeline(recorder=recorder), stop_event)

    assert [r.value for r in recorder.rows] == [1.0]
    assert stats.chunks == 1
    assert source.reads == 2


def test_framing_overrun_when_cap_configured() -> None:
    source = ChunkSource([b"0" * 64, b"0" * 64])
    with pytest.raises(FramingOverrun):
        _run(source, Pipeline(), max_buffer_bytes=100)


def test_framing_overrun_keeps_lines_completed_by_the_same_chunk() -> None:
    recorder = ListRecorder()
    source = ChunkSource([b"x\r\n65.0\r\n70.5\r\n" + b"9" * 20, b"9"])
    with pytest.raises(FramingOverrun):
        _run(source, Pipeline(recorder=recorder), max_buffer_bytes=16)
    assert [r.value for r in recorder.rows] == [65.0, 70.5]
    assert source.reads == 1
    assert source.closed is True
