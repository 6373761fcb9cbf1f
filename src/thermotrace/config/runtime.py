"""Runtime configuration for the probe ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

import yaml

SAMPLE_INTERVALS = ("second", "minute")


@dataclass(slots=True)
class ThermoTraceConfig:
    """
    Tuning knobs for how probe readings are ingested, logged, and charted.

    The defaults assume a 9600 baud probe printing about one reading per
    second and a chart that keeps the last two minutes on screen.
    """

    port: str = "/dev/ttyACM0"
    baud: int = 9600
    chunk_size: int = 1024

    # Two-phase shutdown: cooperative join, then join after forced interrupt
    stop_timeout_s: float = 2.0
    interrupt_timeout_s: float = 20.0

    # None disables the framing safety cap
    max_buffer_bytes: Optional[int] = None

    # USDA safe temperature for fish, in °C
    threshold: Optional[float] = 62.8

    output_dir: Optional[str] = None
    log_prefix: str = "probe"
    timestamp_millis: bool = False

    plot_points: int = 120
    plot_min: float = 0.0
    plot_max: float = 100.0
    sample_interval: str = "second"
    live_queue_size: int = 256

    def sanitized(self) -> ThermoTraceConfig:
        """Return a copy with derived limits applied."""
        max_buffer = self.max_buffer_bytes
        if max_buffer is not None:
            max_buffer = max(2, int(max_buffer))
        threshold = self.threshold
        if threshold is not None:
            threshold = float(threshold)
        interval = str(self.sample_interval).strip().lower()
        if interval not in SAMPLE_INTERVALS:
            interval = "second"
        plot_min = float(self.plot_min)
        plot_max = float(self.plot_max)
        if plot_max <= plot_min:
            plot_max = plot_min + 1.0
        stop_timeout = max(0.0, float(self.stop_timeout_s))
        return ThermoTraceConfig(
            port=str(self.port),
            baud=max(1, int(self.baud)),
            chunk_size=max(1, int(self.chunk_size)),
            stop_timeout_s=stop_timeout,
            # The second wait is never shorter than the first one.
            interrupt_timeout_s=max(stop_timeout, float(self.interrupt_timeout_s)),
            max_buffer_bytes=max_buffer,
            threshold=threshold,
            output_dir=str(self.output_dir) if self.output_dir else None,
            log_prefix=str(self.log_prefix).strip() or "probe",
            timestamp_millis=bool(self.timestamp_millis),
            plot_points=max(2, int(self.plot_points)),
            plot_min=plot_min,
            plot_max=plot_max,
            sample_interval=interval,
            live_queue_size=max(1, int(self.live_queue_size)),
        )

    def sample_interval_ms(self) -> int:
        """Return the chart sampling period that matches ``sample_interval``."""
        return 60_000 if self.sample_interval == "minute" else 1000


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`ThermoTraceConfig`."""
    return {f.name for f in fields(ThermoTraceConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten known nesting patterns (e.g. top-level ``ingest`` key)."""
    if "ingest" in data and isinstance(data["ingest"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "ingest":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> ThermoTraceConfig:
    """Build :class:`ThermoTraceConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return ThermoTraceConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return ThermoTraceConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> ThermoTraceConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`ThermoTraceConfig`.
    """
    if path is None:
        return ThermoTraceConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return ThermoTraceConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["SAMPLE_INTERVALS", "ThermoTraceConfig", "config_from_mapping", "load_config"]
