"""Desktop GUI implementation built with PySide6/Qt and pyqtgraph.

:mod:`live_surface` is the presentation surface the ingestion thread posts
readings to, :mod:`main_window` draws the rolling chart, and
:mod:`application` is the command-line entry point.
"""
