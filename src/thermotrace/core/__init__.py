"""Core ingestion pipeline: framing, fan-out, and the reader lifecycle.

:mod:`framing` splits the probe byte stream into lines, :mod:`pipeline` fans
each reading out to the session log and the live display,
:mod:`stream_reader` drives both from a blocking byte source, and
:mod:`lifecycle` runs that loop on a background thread with a bounded,
two-phase shutdown.
"""
