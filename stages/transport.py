"""
Transport Module

Hand-off of newline-terminated command tokens to the actuator controller.
The serial transport owns connection lifecycle and bounded retries; callers
only see `send(bytes) -> bool`.
"""

import logging
import threading
import time

from typing import List, Optional, Protocol

import serial  # pyserial
from serial.serialutil import SerialException

from config import PipelineConfig
from .exceptions import TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can deliver one encoded command."""

    def send(self, data: bytes) -> bool:
        ...


class SerialTransport:
    """Serial link to the actuator controller (e.g. an Arduino over USB)."""

    def __init__(self, port: str, baud: int = None, config: dict = None):
        """
        Initialize serial transport. The port is opened lazily on first send.

        Args:
            port: Device path, e.g. /dev/ttyUSB0 or COM3
            baud: Baud rate, uses the configured BAUD_RATE if None
            config: Optional config dict, uses PipelineConfig.SERIAL if None
        """
        self.config = config or PipelineConfig.SERIAL
        self._port = port
        self._baud = baud or self.config['BAUD_RATE']
        self._lock = threading.Lock()
        self._ser: Optional[serial.Serial] = None

    def _open(self) -> None:
        self._close()
        self._ser = serial.Serial(
            self._port,
            self._baud,
            timeout=self.config['WRITE_TIMEOUT'],
            write_timeout=self.config['WRITE_TIMEOUT']
        )
        # Most Arduino boards reset on open.
        delay = self.config['RESET_DELAY']
        if delay:
            time.sleep(delay)
        logger.info("Opened %s at %d baud", self._port, self._baud)

    def _close(self) -> None:
        if self._ser is not None:
            try:
                self._ser.close()
            except (SerialException, OSError) as exc:
                logger.debug("Error closing %s: %s", self._port, exc)
            self._ser = None

    @property
    def is_open(self) -> bool:
        return bool(self._ser is not None and self._ser.is_open)

    def _write(self, data: bytes) -> None:
        self._ser.reset_input_buffer()
        written = self._ser.write(data)
        if written is not None and written != len(data):
            raise TransportError(f"Short write: {written}/{len(data)} bytes")
        self._ser.flush()

    def send(self, data: bytes) -> bool:
        """
        Write one command, reopening the port between attempts.

        Returns:
            True if the bytes were written, False after MAX_RETRIES failed retries
        """
        attempts = 1 + int(self.config['MAX_RETRIES'])
        with self._lock:
            for attempt in range(1, attempts + 1):
                try:
                    if not self.is_open:
                        self._open()
                    self._write(data)
                    return True
                except (SerialException, OSError, TransportError) as exc:
                    logger.warning("Send %r failed (attempt %d/%d): %s", data, attempt, attempts, exc)
                    self._close()
        return False

    def close(self) -> None:
        with self._lock:
            self._close()


class LoggingTransport:
    """Dry-run transport that logs and records every command."""

    def __init__(self):
        self.sent: List[bytes] = []
        self._lock = threading.Lock()

    def send(self, data: bytes) -> bool:
        with self._lock:
            self.sent.append(data)
        logger.info("-> %s", data.decode('ascii', errors='replace').strip())
        return True

    def close(self) -> None:
        pass
