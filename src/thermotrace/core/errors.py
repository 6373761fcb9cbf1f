"""thermotrace exception hierarchy.

Every failure the ingestion pipeline can hit has its own type. All of them
except :class:`ShutdownTimeout` end the current ingestion session; none are
retried.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ThermoTraceError(Exception):
    """Base exception for all thermotrace failures."""


class FramingOverrun(ThermoTraceError):
    """Raised when undelimited bytes exceed the configured buffer cap."""

    def __init__(self, pending: int, limit: int) -> None:
        super().__init__(f"{pending} bytes buffered without a CRLF delimiter (limit {limit})")
        self.pending = pending
        self.limit = limit


class ParseFailure(ThermoTraceError):
    """Raised when a framed line is not a valid decimal temperature."""

    def __init__(self, line: bytes | str, reason: str = "not a decimal number") -> None:
        super().__init__(f"Cannot parse probe line {line!r}: {reason}")
        self.line = line


class DurableWriteFailure(ThermoTraceError):
    """Raised when appending to the session log fails."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to append to {path}{detail}")
        self.path = path


class ByteSourceFailure(ThermoTraceError):
    """Raised for read errors other than a clean end of stream."""


class ShutdownTimeout(ThermoTraceError):
    """Describes an ingestion thread that outlived both shutdown waits.

    It is logged by the controller and never raised to the caller.
    """


__all__ = [
    "ThermoTraceError",
    "FramingOverrun",
    "ParseFailure",
    "DurableWriteFailure",
    "ByteSourceFailure",
    "ShutdownTimeout",
]
