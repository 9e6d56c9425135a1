"""RS-232 connection to the BK-390A and frame synchronisation.

The meter talks 2400 baud, 7 data bits, odd parity, 1 stop bit by default.
Other line settings are given as ``<baud>:<bits><parity><stopbits>``,
e.g. ``9600:8n1``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol

import serial

from ..exceptions import FrameOverrunError, NoConnectionError, SerialConfigError
from ..protocol.framing import FRAME_SIZE, TERMINATOR, RawFrame

logger = logging.getLogger(__name__)

BAUD_RATES = (9600, 4800, 2400, 1200)
BYTE_SIZES = {"7": serial.SEVENBITS, "8": serial.EIGHTBITS}
PARITIES = {"o": serial.PARITY_ODD, "e": serial.PARITY_EVEN, "n": serial.PARITY_NONE}
STOP_BITS = {"1": serial.STOPBITS_ONE, "2": serial.STOPBITS_TWO}

DEFAULT_SERIAL_PARAMS = "2400:7o1"
READ_TIMEOUT_S = 2.0
# Port read timeout. Frame deadlines are tracked by FrameReader, not the port.
POLL_INTERVAL_S = 0.05


@dataclass(frozen=True)
class SerialSettings:
    """Line settings for the serial port."""

    baudrate: int = 2400
    bytesize: int = serial.SEVENBITS
    parity: str = serial.PARITY_ODD
    stopbits: float = serial.STOPBITS_ONE

    def __str__(self) -> str:
        return f"{self.baudrate}:{self.bytesize}{self.parity.lower()}{self.stopbits:g}"

    def to_dict(self) -> dict:
        return {
            "baudrate": self.baudrate,
            "bytesize": self.bytesize,
            "parity": self.parity,
            "stopbits": self.stopbits,
        }


def parse_serial_params(text: str | None) -> SerialSettings:
    """Parse a ``<baud>:<bits><parity><stopbits>`` string.

    An empty string or None yields the meter defaults (2400:7o1).

    Raises:
        SerialConfigError: If any field is missing or not supported.
    """
    if not text:
        return SerialSettings()

    baud, sep, line = text.strip().partition(":")
    if not sep or len(line) != 3:
        raise SerialConfigError(
            f"Serial parameters must look like {DEFAULT_SERIAL_PARAMS}, got {text!r}"
        )

    if not baud.isdigit() or int(baud) not in BAUD_RATES:
        raise SerialConfigError(
            f"Invalid serial speed {baud!r}. Valid: {list(BAUD_RATES)}"
        )

    bits, parity, stop = line.lower()
    if bits not in BYTE_SIZES:
        raise SerialConfigError(f"Invalid serial byte size {bits!r}")
    if parity not in PARITIES:
        raise SerialConfigError(f"Invalid serial parity type {parity!r}")
    if stop not in STOP_BITS:
        raise SerialConfigError(f"Invalid serial stop bits {stop!r}")

    return SerialSettings(
        baudrate=int(baud),
        bytesize=BYTE_SIZES[bits],
        parity=PARITIES[parity],
        stopbits=STOP_BITS[stop],
    )


def resolve_port(port: str) -> str:
    """Map a bare COM port number (``"4"``) to its device name (``"COM4"``)."""
    port = port.strip()
    if port.isdigit():
        return f"COM{int(port)}"
    return port


class SerialConnection:
    """Manages the serial link to the meter.

    Usage::

        with SerialConnection("/dev/ttyUSB0") as conn:
            reader = FrameReader(conn)
            frame = reader.read_frame(timeout=2.0)

    ``port`` may be anything pyserial's ``serial_for_url`` accepts, including
    ``loop://`` for testing.
    """

    def __init__(self, port: str, settings: SerialSettings | None = None) -> None:
        self._port = resolve_port(port)
        self._settings = settings or SerialSettings()
        self._serial: serial.SerialBase | None = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def settings(self) -> SerialSettings:
        return self._settings

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open and configure the port.

        Raises:
            SerialConfigError: If the port rejects the line settings.
            ConnectionError: If the port cannot be opened.
        """
        if self.connected:
            return
        try:
            self._serial = serial.serial_for_url(
                self._port,
                baudrate=self._settings.baudrate,
                bytesize=self._settings.bytesize,
                parity=self._settings.parity,
                stopbits=self._settings.stopbits,
                timeout=POLL_INTERVAL_S,
            )
        except ValueError as e:
            raise SerialConfigError(
                f"Error setting port configuration ({self._settings}): {e}"
            ) from e
        except serial.SerialException as e:
            raise ConnectionError(
                f"Error while trying to open port {self._port!r}: {e}"
            ) from e

        logger.info("Port %s opened at %s", self._port, self._settings)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port %s: %s", self._port, e)
        finally:
            self._serial = None
            logger.info("Port %s closed", self._port)

    def read_byte(self) -> bytes:
        """Read a single byte, waiting at most one poll interval.

        Returns an empty ``bytes`` if nothing arrived in time.

        Raises:
            ConnectionError: If the port is not open.
        """
        if not self.connected:
            raise ConnectionError("Serial port is not open")
        return self._serial.read(1)

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ByteSource(Protocol):
    def read_byte(self) -> bytes: ...


class FrameReader:
    """Collects terminator-delimited 9-byte frames from a byte source."""

    def __init__(self, source: ByteSource) -> None:
        self._source = source

    def _next_byte(self, deadline: float) -> bytes:
        # Poll the source until a byte arrives or the deadline passes.
        while True:
            byte = self._source.read_byte()
            if byte or time.monotonic() >= deadline:
                return byte

    def read_frame(self, timeout: float = READ_TIMEOUT_S) -> RawFrame:
        """Wait for activity, then collect bytes up to the next terminator.

        ``timeout`` bounds the wait for the first byte and, separately, the
        collection that follows it, so a slow start does not eat into the
        time left to finish the frame.

        A fragment shorter than a frame ending in a terminator is what we see
        when attaching mid-stream; it is dropped and collection restarts.

        Raises:
            NoConnectionError: Nothing arrived within ``timeout``.
            FrameOverrunError: Bytes arrived but no complete frame formed,
                either because a tenth byte came before the terminator or the
                deadline passed mid-frame.
        """
        byte = self._next_byte(time.monotonic() + timeout)
        if not byte:
            raise NoConnectionError(f"No serial activity within {timeout:g}s")

        deadline = time.monotonic() + timeout
        buffer = bytearray()
        while True:
            if byte[0] == TERMINATOR:
                if len(buffer) == FRAME_SIZE:
                    logger.debug("Frame: %s", buffer.hex(" "))
                    return RawFrame(bytes(buffer))
                logger.debug(
                    "Dropping %d-byte fragment: %s",
                    len(buffer), buffer.hex(" ") or "(empty)",
                )
                buffer.clear()
            else:
                buffer += byte
                if len(buffer) > FRAME_SIZE:
                    raise FrameOverrunError(bytes(buffer))

            byte = self._next_byte(deadline)
            if not byte:
                raise FrameOverrunError(bytes(buffer))
