"""thermotrace: serial temperature probe logger with a live chart."""

__version__ = "0.1.0"
