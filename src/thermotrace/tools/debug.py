"""Minimal helpers for opt-in debug/instrumentation hooks."""

from __future__ import annotations

import os

_TRUTHY = {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Return True when lightweight instrumentation should run.

    Reads ``THERMOTRACE_DEBUG`` on every call so tests and long-lived
    sessions can toggle it.
    """
    return os.getenv("THERMOTRACE_DEBUG", "").lower() in _TRUTHY
