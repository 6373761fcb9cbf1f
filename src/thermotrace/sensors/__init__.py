"""Probe-specific line parsers.

:mod:`temperature_probe` converts the text lines printed by the serial
temperature probe into :class:`~thermotrace.core.models.Reading` objects.
"""
