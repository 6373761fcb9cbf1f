"""Data output helpers (CSV session logs and file paths).

Utility modules here keep disk-level concerns isolated from the rest of the
application:
- :mod:`csv_writer` appends readings to the durable session log.
- :mod:`file_paths` names session logs after their start time.
"""
