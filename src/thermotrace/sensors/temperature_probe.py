"""
The probe firmware prints one temperature per line, in °C, terminated by
``CR LF``:

  65.2\\r\\n
  65.4\\r\\n

``parse_reading()`` turns one framed line (delimiter already removed) into a
:class:`~thermotrace.core.models.Reading`. An unreadable line raises
:class:`ParseFailure` instead of returning ``None``; the ingestion loop
stops on it.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

import numpy as np

from ..core.errors import ParseFailure
from ..core.models import Clock, Reading

# Locale-invariant signed decimal, optional exponent; surrounding whitespace
# is tolerated. ASCII only, since str \d also matches Arabic-Indic and
# fullwidth digits that float() would accept.
_DECIMAL_RE = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*", re.ASCII)


def _decode(line: bytes | str) -> str:
    if isinstance(line, str):
        return line
    try:
        return line.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseFailure(line, f"invalid UTF-8 ({exc.reason})") from exc


def parse_reading(line: bytes | str, *, clock: Optional[Clock] = None) -> Reading:
    """
    Parse one probe line into a :class:`Reading` stamped with ``clock()``.

    Raises :class:`ParseFailure` for empty lines, non-numeric text, NaN or
    infinity spellings, and digit-group separators.
    """
    text = _decode(line)
    if _DECIMAL_RE.fullmatch(text) is None:
        raise ParseFailure(line)
    value = float(text)
    timestamp = clock() if clock is not None else datetime.now()
    return Reading.create(value, timestamp)


def is_safe(reading: Reading, threshold: float) -> bool:
    """Return True when ``reading`` has reached ``threshold`` (compared in float32)."""
    return bool(np.float32(reading.value) >= np.float32(threshold))
