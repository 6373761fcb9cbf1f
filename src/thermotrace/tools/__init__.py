"""Miscellaneous development helpers (opt-in debug instrumentation)."""
