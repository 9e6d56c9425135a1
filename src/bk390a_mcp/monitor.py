"""The wait-read-decode-format cycle that drives the display."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .exceptions import (
    BK390AError,
    DecodeError,
    FrameOverrunError,
    NoConnectionError,
)
from .protocol.decoder import decode
from .protocol.formatter import DisplayLines, DisplayState
from .transport.serial_connection import READ_TIMEOUT_S, FrameReader

logger = logging.getLogger(__name__)

Renderer = Callable[[DisplayLines], None]


class MeterMonitor:
    """Runs one frame per cycle through reader, decoder and formatter.

    Every cycle hands exactly one :class:`DisplayLines` to the renderer. Cycle
    errors degrade the display instead of stopping the loop:

    - no serial activity shows the disconnected lines
    - an overrun or undecodable frame keeps the previous lines
    """

    def __init__(
        self,
        reader: FrameReader,
        renderer: Renderer,
        show_mode: bool = False,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._reader = reader
        self._renderer = renderer
        self.timeout = timeout
        self.display = DisplayState(show_mode=show_mode)
        # Error from the most recent cycle, None if it produced a reading.
        self.last_error: BK390AError | None = None

    def run_cycle(self) -> DisplayLines:
        """Read, decode and render a single frame."""
        self.last_error = None
        try:
            frame = self._reader.read_frame(self.timeout)
        except NoConnectionError as e:
            logger.debug("%s", e)
            self.last_error = e
            lines = self.display.show_disconnected()
        except FrameOverrunError as e:
            logger.debug("Frame discarded: %s", e)
            self.last_error = e
            lines = self.display.hold()
        else:
            try:
                measurement = decode(frame)
            except DecodeError as e:
                logger.warning("%s in %r, holding previous reading", e, frame)
                self.last_error = e
                lines = self.display.hold()
            else:
                lines = self.display.show(measurement)

        self._renderer(lines)
        return lines

    def run(self, stop: threading.Event, on_exit: Callable[[], None] | None = None) -> None:
        """Cycle until ``stop`` is set, then call ``on_exit`` to release the port."""
        try:
            while not stop.is_set():
                self.run_cycle()
        finally:
            if on_exit is not None:
                on_exit()
