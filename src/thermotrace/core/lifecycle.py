"""Start/stop supervision of the background ingestion thread."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..config import ThermoTraceConfig
from .errors import ShutdownTimeout, ThermoTraceError
from .framing import FrameDecoder
from .models import IngestStats, LifecycleState
from .pipeline import Pipeline
from .stream_reader import ByteSource, close_source, reader_loop

logger = logging.getLogger(__name__)

FailureCallback = Callable[[BaseException], None]


class IngestTask:
    """Supervised handle around the daemon thread running :func:`reader_loop`.

    A fatal error raised by the loop is kept in :attr:`failure` and handed to
    ``on_failure`` from the ingestion thread.
    """

    def __init__(
        self,
        source: ByteSource,
        decoder: FrameDecoder,
        pipeline: Pipeline,
        *,
        chunk_size: int,
        on_failure: Optional[FailureCallback] = None,
        thread_name: Optional[str] = None,
    ) -> None:
        self.source = source
        self.stop_event = threading.Event()
        self.stats = IngestStats()
        self.failure: Optional[BaseException] = None
        self._decoder = decoder
        self._pipeline = pipeline
        self._chunk_size = chunk_size
        self._on_failure = on_failure
        self._thread = threading.Thread(
            target=self._run,
            name=thread_name or "ThermoTraceReader",
            daemon=True,
        )

    def _run(self) -> None:
        try:
            reader_loop(
                self.source,
                self._decoder,
                self._pipeline,
                stop_event=self.stop_event,
                chunk_size=self._chunk_size,
                stats=self.stats,
            )
        except Exception as exc:
            self.failure = exc
            if isinstance(exc, ThermoTraceError):
                logger.error("Ingestion stopped: %s", exc)
            else:
                logger.exception("Ingestion stopped by unexpected error")
            if self._on_failure is not None:
                try:
                    self._on_failure(exc)
                except Exception:
                    logger.exception("Ingestion failure callback raised")

    def start(self) -> None:
        self._thread.start()

    def request_stop(self) -> None:
        self.stop_event.set()

    def await_termination(self, timeout: Optional[float]) -> bool:
        """Join for at most ``timeout`` seconds; True when the thread has exited."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def force_cancel(self) -> None:
        """Unblock a read parked on the source (``cancel_read``, else ``close``)."""
        cancel = getattr(self.source, "cancel_read", None)
        if callable(cancel):
            try:
                cancel()
                return
            except Exception:
                logger.exception("cancel_read failed, closing the byte source instead")
        close_source(self.source)

    def is_alive(self) -> bool:
        return self._thread.is_alive()


class IngestController:
    """
    Own the ingestion thread for one session.

    ``stop()`` asks the loop to finish, waits ``stop_timeout_s``, then forces
    the blocked read to return and waits up to ``interrupt_timeout_s`` more.
    It never raises for a thread that will not die; it logs the leak and
    still closes the byte source.
    """

    def __init__(
        self,
        config: ThermoTraceConfig,
        pipeline: Pipeline,
        *,
        on_failure: Optional[FailureCallback] = None,
    ) -> None:
        self._config = config.sanitized()
        self._pipeline = pipeline
        self._on_failure = on_failure
        self._state = LifecycleState.NOT_STARTED
        self._task: Optional[IngestTask] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def failure(self) -> Optional[BaseException]:
        return self._task.failure if self._task is not None else None

    @property
    def stats(self) -> Optional[IngestStats]:
        return self._task.stats if self._task is not None else None

    def is_running(self) -> bool:
        return self._state is LifecycleState.RUNNING and self._task is not None and self._task.is_alive()

    def start(self, source: ByteSource) -> None:
        with self._lock:
            if self._state is not LifecycleState.NOT_STARTED:
                raise RuntimeError(f"Ingestion already started (state={self._state.value})")
            self._task = IngestTask(
                source,
                FrameDecoder(self._config.max_buffer_bytes),
                self._pipeline,
                chunk_size=self._config.chunk_size,
                on_failure=self._on_failure,
            )
            self._task.start()
            self._state = LifecycleState.RUNNING
            logger.info("Ingestion started")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop exits on its own (end of stream or fatal error)."""
        if self._task is None:
            return True
        return self._task.await_termination(timeout)

    def stop(self) -> bool:
        """
        Shut the ingestion thread down; return True if it terminated.

        Calling it before ``start()`` or a second time is a no-op.
        """
        with self._lock:
            task = self._task
            if task is None or self._state is LifecycleState.STOPPED:
                return True

            self._state = LifecycleState.STOP_REQUESTED
            started = time.monotonic()
            task.request_stop()
            terminated = task.await_termination(self._config.stop_timeout_s)
            if not terminated:
                logger.warning(
                    "Ingestion thread still running after %.1f s, interrupting the blocked read",
                    self._config.stop_timeout_s,
                )
                task.force_cancel()
                terminated = task.await_termination(self._config.interrupt_timeout_s)
            if not terminated:
                logger.warning(
                    "%s",
                    ShutdownTimeout(
                        f"Ingestion thread did not exit {time.monotonic() - started:.1f} s after "
                        "stop; the byte source may not be released"
                    ),
                )

            close_source(task.source)
            self._state = LifecycleState.STOPPED
            logger.info(
                "Ingestion stopped (terminated=%s, readings=%d)", terminated, task.stats.readings
            )
            return terminated

    def raise_for_failure(self) -> None:
        """Re-raise the error that ended the session, if any."""
        failure = self.failure
        if failure is not None:
            raise failure
