"""Shared dataclasses for probe sessions and readings."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import numpy as np

DELIMITER = b"\r\n"

Clock = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class Reading:
    """One timestamped probe sample.

    ``value`` holds a single-precision quantity stored as a Python float.
    """

    value: float
    timestamp: datetime

    @classmethod
    def create(cls, value: float, timestamp: Optional[datetime] = None) -> Reading:
        """Round ``value`` to float32 and stamp it (now, if ``timestamp`` is omitted)."""
        return cls(
            value=float(np.float32(value)),
            timestamp=timestamp if timestamp is not None else datetime.now(),
        )


class LifecycleState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOP_REQUESTED = "stop_requested"
    STOPPED = "stopped"


@dataclass(slots=True)
class IngestStats:
    """Counters kept by the ingestion loop for diagnostics."""

    chunks: int = 0
    bytes_read: int = 0
    lines: int = 0
    readings: int = 0
