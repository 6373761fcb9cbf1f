"""Helpers for constructing session log paths."""

import re
from datetime import datetime
from pathlib import Path

from ..config.app_config import AppPaths

# Allow only alphanumerics, underscore, dot, and dash.
_PREFIX_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def _sanitize_prefix(name: str) -> str:
    """
    Sanitize a log prefix for use in a file name.

    - Replace disallowed characters with '_'.
    - Strip leading/trailing underscores.
    - Fall back to 'probe' if nothing remains.
    """
    cleaned = _PREFIX_RE.sub("_", name).strip("_")
    return cleaned or "probe"


def session_log_path(
    base: Path | None = None,
    prefix: str = "probe",
    now: datetime | None = None,
) -> Path:
    """
    Build a timestamped CSV path for a logging session.

    Example: "probe_2017_01_01_15_30_45.csv"
    """
    timestamp = (now or datetime.now()).strftime("%Y_%m_%d_%H_%M_%S")
    root = base or AppPaths().data_root
    return root / f"{_sanitize_prefix(prefix)}_{timestamp}.csv"
