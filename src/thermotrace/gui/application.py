"""Entry point for the probe monitor.

This module wires up argument parsing, opens the serial probe and then the
session log, starts the :class:`~thermotrace.core.lifecycle.IngestController` and
then either runs the Qt event loop with the live chart or, with
``--headless``, waits for the probe stream to end (or Ctrl+C).
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence, TextIO

import serial

from ..config import ThermoTraceConfig, load_config
from ..core.errors import DurableWriteFailure, ThermoTraceError
from ..core.lifecycle import IngestController
from ..core.pipeline import LiveSink, Pipeline, QueueSurface
from ..core.stream_reader import ByteSource, close_source
from ..dataio import file_paths
from ..dataio.csv_writer import ReadingLog, format_row
from ..devices.serial_source import SerialByteSource, SerialConfig, available_ports

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serial temperature probe monitor")
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file")
    parser.add_argument("--port", type=str, default=None, help="Serial device (overrides config)")
    parser.add_argument("--baud", type=int, default=None, help="Baud rate (overrides config)")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory for the session CSV (default: data root)",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Log readings without opening the chart window",
    )
    parser.add_argument(
        "--list-ports",
        action="store_true",
        help="Print the serial ports that are present and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
        help="Logging verbosity (default: INFO)",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> ThermoTraceConfig:
    cfg = load_config(args.config)
    overrides = {}
    if args.port:
        overrides["port"] = args.port
    if args.baud:
        overrides["baud"] = args.baud
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    return replace(cfg, **overrides).sanitized()


def _open_session_log(cfg: ThermoTraceConfig) -> ReadingLog:
    base = Path(cfg.output_dir).expanduser() if cfg.output_dir else None
    log = ReadingLog(file_paths.session_log_path(base, cfg.log_prefix), millis=cfg.timestamp_millis)
    log.create()
    return log


def _echo_readings(surface: QueueSurface, out: TextIO, millis: bool) -> None:
    for reading in surface.drain():
        out.write(format_row(reading, millis=millis))
    out.flush()


def run_headless(
    cfg: ThermoTraceConfig,
    log: ReadingLog,
    source: ByteSource,
    out: Optional[TextIO] = None,
) -> int:
    """Ingest until end of stream or Ctrl+C, echoing each reading to ``out``."""
    out = out if out is not None else sys.stdout
    surface = QueueSurface(maxsize=cfg.live_queue_size)
    pipeline = Pipeline(recorder=log, live=LiveSink(surface), threshold=cfg.threshold)
    controller = IngestController(cfg, pipeline)
    controller.start(source)
    try:
        while controller.is_running():
            controller.wait(0.5)
            _echo_readings(surface, out, cfg.timestamp_millis)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        controller.stop()
    _echo_readings(surface, out, cfg.timestamp_millis)
    try:
        controller.raise_for_failure()
    except ThermoTraceError as exc:
        logger.error("Session ended with an error: %s", exc)
        return 1
    return 0


def run_gui(argv: list[str], cfg: ThermoTraceConfig, log: ReadingLog, source: ByteSource) -> int:
    from PySide6.QtWidgets import QApplication

    from .live_surface import QtLiveSurface
    from .main_window import MonitorWindow

    app = QApplication.instance() or QApplication(argv)
    surface = QtLiveSurface()
    window = MonitorWindow(surface, cfg)

    pipeline = Pipeline(recorder=log, live=LiveSink(surface), threshold=cfg.threshold)
    controller = IngestController(cfg, pipeline, on_failure=surface.report_failure)
    app.aboutToQuit.connect(controller.stop)

    window.show()
    controller.start(source)
    return app.exec()


def main(argv: Sequence[str] | None = None) -> None:
    raw_argv = list(argv) if argv is not None else sys.argv
    parser = _build_arg_parser()
    args, qt_args = parser.parse_known_args(raw_argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_ports:
        for device in available_ports():
            print(device)
        raise SystemExit(0)

    cfg = _resolve_config(args)
    # The port is opened before the log so a missing probe leaves no empty CSV.
    try:
        source = SerialByteSource(SerialConfig(port=cfg.port, baud=cfg.baud))
    except (serial.SerialException, ValueError) as exc:
        logger.error("Cannot open probe on %s: %s", cfg.port, exc)
        raise SystemExit(1) from exc
    try:
        log = _open_session_log(cfg)
    except DurableWriteFailure as exc:
        logger.error("Cannot create session log: %s", exc)
        close_source(source)
        raise SystemExit(1) from exc

    if args.headless:
        raise SystemExit(run_headless(cfg, log, source))
    raise SystemExit(run_gui([raw_argv[0], *qt_args], cfg, log, source))


if __name__ == "__main__":
    main()
