from __future__ import annotations

import threading
import time
from typing import Iterator

import pytest

from thermotrace.config import ThermoTraceConfig
from thermotrace.core.errors import ParseFailure
from thermotrace.core.lifecycle import IngestController
from thermotrace.core.models import LifecycleState, Reading
from thermotrace.core.pipeline import Pipeline


class BlockingSource:
    """Serial-like source whose read parks until data, cancel, or close."""

    def __init__(self, *, honour_cancel: bool = True, honour_close: bool = True) -> None:
        self._wake = threading.Event()
        self._honour_cancel = honour_cancel
        self._honour_close = honour_close
        self.cancel_calls = 0
        self.close_calls = 0

    def read(self, size: int) -> bytes:
        self._wake.wait()
        return b""

    def cancel_read(self) -> None:
        self.cancel_calls += 1
        if self._honour_cancel:
            self._wake.set()

    def close(self) -> None:
        self.close_calls += 1
        if self._honour_close:
            self._wake.set()

    def release(self) -> None:
        self._wake.set()


class CloseOnlySource(BlockingSource):
    """Source without ``cancel_read``: only closing it unblocks the read."""

    cancel_read = None  # type: ignore[assignment]


class StreamingSource:
    """Source that keeps yielding one reading per read, like a live probe."""

    def __init__(self) -> None:
        self.closed = False
        self.cancel_calls = 0

    def read(self, size: int) -> bytes:
        time.sleep(0.001)
        return b"65.0\r\n"

    def cancel_read(self) -> None:
        self.cancel_calls += 1

    def close(self) -> None:
        self.closed = True


class ChunkSource:
    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.closed = False

    def read(self, size: int) -> bytes:
        return self._chunks.pop(0) if self._chunks else b""

    def close(self) -> None:
        self.closed = True


class ListRecorder:
    def __init__(self) -> None:
        self.rows: list[Reading] = []

    def record(self, reading: Reading) -> None:
        self.rows.append(reading)


def _config(stop: float = 0.05, interrupt: float = 0.5) -> ThermoTraceConfig:
    return ThermoTraceConfig(stop_timeout_s=stop, interrupt_timeout_s=interrupt)


@pytest.fixture
def blocking_sources() -> Iterator[list[BlockingSource]]:
    created: list[BlockingSource] = []
    yield created
    for source in created:
        source.release()


def test_stop_before_start_is_a_noop() -> None:
    controller = IngestController(_config(), Pipeline())
    assert controller.stop() is True
    assert controller.state is LifecycleState.NOT_STARTED


def test_start_twice_fails(blocking_sources: list[BlockingSource]) -> None:
    source = BlockingSource()
    blocking_sources.append(source)
    controller = IngestController(_config(), Pipeline())
    controller.start(source)
    assert controller.state is LifecycleState.RUNNING
    with pytest.raises(RuntimeError):
        controller.start(BlockingSource())
    controller.stop()
    with pytest.raises(RuntimeError):
        controller.start(BlockingSource())


def test_stop_while_streaming_finishes_within_first_timeout() -> None:
    source = StreamingSource()
    recorder = ListRecorder()
    controller = IngestController(_config(stop=2.0, interrupt=5.0), Pipeline(recorder=recorder))
    controller.start(source)
    time.sleep(0.05)

    started = time.monotonic()
    assert controller.stop() is True
    assert time.monotonic() - started < 2.0
    assert source.cancel_calls == 0
    assert source.closed
    assert controller.state is LifecycleState.STOPPED
    assert recorder.rows


def test_stop_interrupts_blocked_read(blocking_sources: list[BlockingSource]) -> None:
    source = BlockingSource()
    blocking_sources.append(source)
    controller = IngestController(_config(stop=0.05, interrupt=2.0), Pipeline())
    controller.start(source)

    started = time.monotonic()
    assert controller.stop() is True
    assert time.monotonic() - started < 2.05
    assert source.cancel_calls == 1
    assert source.close_calls >= 1
    assert controller.failure is None


def test_force_cancel_falls_back_to_close(blocking_sources: list[BlockingSource]) -> None:
    source = CloseOnlySource()
    blocking_sources.append(source)
    controller = IngestController(_config(stop=0.05, interrupt=2.0), Pipeline())
    controller.start(source)

    assert controller.stop() is True
    assert source.close_calls >= 1


def test_unresponsive_source_gives_up_after_second_timeout(
    blocking_sources: list[BlockingSource], caplog: pytest.LogCaptureFixture
) -> None:
    source = BlockingSource(honour_cancel=False, honour_close=False)
    blocking_sources.append(source)
    controller = IngestController(_config(stop=0.05, interrupt=0.2), Pipeline())
    controller.start(source)

    started = time.monotonic()
    assert controller.stop() is False
    elapsed = time.monotonic() - started
    assert 0.2 <= elapsed < 1.5
    assert source.cancel_calls == 1
    # The final release step runs even though the join failed.
    assert source.close_calls == 1
    assert controller.state is LifecycleState.STOPPED
    assert any("may not be released" in r.getMessage() for r in caplog.records)


def test_fatal_parse_failure_is_surfaced() -> None:
    failures: list[BaseException] = []
    recorder = ListRecorder()
    source = ChunkSource([b"x\r\n65.0\r\nabc\r\n70.0\r\n"])
    controller = IngestController(_config(), Pipeline(recorder=recorder), on_failure=failures.append)
    controller.start(source)

    assert controller.wait(2.0) is True
    assert isinstance(controller.failure, ParseFailure)
    assert failures == [controller.failure]
    assert [r.value for r in recorder.rows] == [65.0]
    assert source.closed
    with pytest.raises(ParseFailure):
        controller.raise_for_failure()
    assert controller.stop() is True
    assert controller.stop() is True


def test_is_running_tracks_the_ingestion_thread(blocking_sources: list[BlockingSource]) -> None:
    source = BlockingSource()
    blocking_sources.append(source)
    controller = IngestController(_config(stop=0.05, interrupt=2.0), Pipeline())
    assert controller.is_running() is False

    controller.start(source)
    assert controller.is_running() is True

    assert controller.stop() is True
    assert controller.is_running() is False


def test_is_running_is_false_once_the_stream_ends() -> None:
    source = ChunkSource([b"x\r\n65.0\r\n"])
    controller = IngestController(_config(), Pipeline())
    controller.start(source)

    assert controller.wait(2.0) is True
    # The loop ended on its own; the state stays RUNNING until stop().
    assert controller.state is LifecycleState.RUNNING
    assert controller.is_running() is False
    assert controller.stop() is True
