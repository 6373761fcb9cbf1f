"""Configuration objects and helpers for thermotrace.

:mod:`runtime` loads the YAML descriptor that tunes the ingestion pipeline
(probe port, shutdown timeouts, chart window) into a typed dataclass, and
:mod:`app_config` resolves where session logs are written.
"""

from .app_config import AppPaths
from .runtime import SAMPLE_INTERVALS, ThermoTraceConfig, config_from_mapping, load_config

__all__ = ["AppPaths", "SAMPLE_INTERVALS", "ThermoTraceConfig", "config_from_mapping", "load_config"]
