"""pyserial-backed byte source for the temperature probe."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import serial
from serial.tools import list_ports

logger = logging.getLogger(__name__)


@dataclass
class SerialConfig:
    """Serial connection configuration.

    Attributes:
        port: Serial port name (e.g., "COM3" on Windows or "/dev/ttyACM0" on Linux).
        baud: Baud rate. Must match the firmware (default 9600).
    """

    port: str
    baud: int = 9600


class SerialByteSource:
    """
    Blocking reader over an open serial port.

    ``read`` waits until at least one byte is available and returns whatever
    is buffered (up to ``size``). ``cancel_read`` makes a pending read return
    early so a shutdown can reclaim the reader thread.
    """

    def __init__(self, cfg: SerialConfig, *, port: Optional[serial.Serial] = None) -> None:
        self.cfg = cfg
        if port is None:
            port = serial.Serial(
                cfg.port,
                cfg.baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=None,
            )
            logger.info("Opened %s at %d baud", cfg.port, cfg.baud)
        self._port = port

    def read(self, size: int) -> bytes:
        if not self._port.is_open:
            return b""
        # Block for the first byte, then take whatever else is already waiting.
        data = self._port.read(1)
        if not data:
            return b""
        waiting = min(max(0, size - 1), self._port.in_waiting)
        if waiting:
            data += self._port.read(waiting)
        return data

    def cancel_read(self) -> None:
        self._port.cancel_read()

    def close(self) -> None:
        if self._port.is_open:
            self._port.close()
            logger.info("Closed serial port %s", self.cfg.port)


def available_ports() -> List[str]:
    """Return the device names of the serial ports currently present."""
    return [info.device for info in list_ports.comports()]
