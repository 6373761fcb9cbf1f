"""Append-only CSV session log for probe readings."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List

import numpy as np

from ..core.errors import DurableWriteFailure
from ..core.models import Reading

logger = logging.getLogger(__name__)

HEADER = ("Time", "Temperature")
# Rows end in a bare LF, whatever the platform.
LINE_TERMINATOR = "\n"


def format_value(value: float) -> str:
    """Shortest decimal that round-trips the float32 value (``65.2``, ``65.0``)."""
    return np.format_float_positional(np.float32(value), trim="0")


def row_fields(reading: Reading, *, millis: bool = False) -> List[str]:
    ts = reading.timestamp
    stamp = ts.strftime("%H:%M:%S")
    if millis:
        stamp = f"{stamp}.{ts.microsecond // 1000:03d}"
    return [stamp, format_value(reading.value)]


def format_row(reading: Reading, *, millis: bool = False) -> str:
    return ",".join(row_fields(reading, millis=millis)) + LINE_TERMINATOR


class ReadingLog:
    """
    Durable sink: one CSV row per reading, appended as it arrives.

    Every :meth:`record` opens the file in append mode and hands the row to
    :func:`csv.writer`, which issues a single write per row, so a crash loses
    at most the row being written. Rows are not deduplicated.
    """

    def __init__(self, path: Path, *, millis: bool = False) -> None:
        self.path = Path(path)
        self.millis = millis

    def create(self) -> Path:
        """
        Create the log with its header row.

        Directories are created as needed; an existing file is never
        overwritten.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("x", newline="", encoding="utf-8") as csvfile:
                csv.writer(csvfile, lineterminator=LINE_TERMINATOR).writerow(HEADER)
        except OSError as exc:
            raise DurableWriteFailure(self.path, exc) from exc
        logger.info("Logging to %s", self.path)
        return self.path

    def record(self, reading: Reading) -> None:
        fields = row_fields(reading, millis=self.millis)
        try:
            with self.path.open("a", newline="", encoding="utf-8") as csvfile:
                csv.writer(csvfile, lineterminator=LINE_TERMINATOR).writerow(fields)
        except OSError as exc:
            raise DurableWriteFailure(self.path, exc) from exc
