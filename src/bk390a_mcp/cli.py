"""Terminal display for the BK-390A.

Reads the meter continuously and rewrites two lines in place: the reading
and, with ``-m``, the meter mode.

    bk390a -p /dev/ttyUSB0 -s 2400:7o1 -m -fc #10ff10 -bc #000000
"""

from __future__ import annotations

import argparse
import logging
import re
import signal
import sys
import threading
from typing import TextIO

from . import __version__
from .exceptions import SerialConfigError
from .monitor import MeterMonitor
from .protocol.formatter import DisplayLines
from .transport.serial_connection import (
    DEFAULT_SERIAL_PARAMS,
    READ_TIMEOUT_S,
    FrameReader,
    SerialConnection,
    parse_serial_params,
)

logger = logging.getLogger(__name__)

DEFAULT_FONT_COLOUR = "#10ff10"
DEFAULT_BACKGROUND_COLOUR = "#000000"
DEFAULT_LINE_WIDTH = 40

_COLOUR_RE = re.compile(r"#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})")


def parse_colour(text: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` into an (r, g, b) tuple."""
    match = _COLOUR_RE.fullmatch(text.strip())
    if match is None:
        raise argparse.ArgumentTypeError(f"Colour must be #rrggbb, got {text!r}")
    return tuple(int(part, 16) for part in match.groups())


class TerminalRenderer:
    """Draws the value and mode lines, overwriting the previous pair."""

    def __init__(
        self,
        stream: TextIO | None = None,
        width: int = DEFAULT_LINE_WIDTH,
        foreground: tuple[int, int, int] | None = None,
        background: tuple[int, int, int] | None = None,
    ) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._width = width
        self._style = ""
        if foreground is not None:
            self._style += "\x1b[38;2;{};{};{}m".format(*foreground)
        if background is not None:
            self._style += "\x1b[48;2;{};{};{}m".format(*background)
        self._drawn = False

    def _fit(self, line: str) -> str:
        return line[: self._width].ljust(self._width)

    def __call__(self, lines: DisplayLines) -> None:
        out = self._stream
        if self._drawn:
            # Back to the start of the value line.
            out.write("\x1b[2F")
        reset = "\x1b[0m" if self._style else ""
        for line in (lines.value_line, lines.mode_line):
            out.write(f"{self._style}{self._fit(line)}{reset}\n")
        out.flush()
        self._drawn = True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bk390a",
        description="BK-Precision 390A multimeter serial data decoder",
    )
    parser.add_argument("-p", "--port", required=True,
                        help="serial port, e.g. /dev/ttyUSB0 or 4 for COM4")
    parser.add_argument("-s", "--serial", default=DEFAULT_SERIAL_PARAMS,
                        metavar="PARAMS",
                        help="<[9600|4800|2400|1200]:[7|8][o|e|n][1|2]> "
                             f"(default: {DEFAULT_SERIAL_PARAMS})")
    parser.add_argument("-m", "--show-mode", action="store_true",
                        help="show multimeter mode (second line of text)")
    parser.add_argument("-fc", "--font-colour", type=parse_colour,
                        default=DEFAULT_FONT_COLOUR, metavar="#RRGGBB",
                        help=f"text colour (default: {DEFAULT_FONT_COLOUR})")
    parser.add_argument("-bc", "--background-colour", type=parse_colour,
                        default=DEFAULT_BACKGROUND_COLOUR, metavar="#RRGGBB",
                        help=f"background colour (default: {DEFAULT_BACKGROUND_COLOUR})")
    parser.add_argument("-wx", "--width", type=int, default=DEFAULT_LINE_WIDTH,
                        help=f"display width in characters (default: {DEFAULT_LINE_WIDTH})")
    parser.add_argument("-t", "--timeout", type=float, default=READ_TIMEOUT_S,
                        help=f"seconds to wait for a frame (default: {READ_TIMEOUT_S:g})")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-d", "--debug", action="store_true",
                           help="log raw frames")
    verbosity.add_argument("-q", "--quiet", action="store_true",
                           help="only log warnings and errors")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level)

    try:
        settings = parse_serial_params(args.serial)
    except SerialConfigError as e:
        parser.error(str(e))

    connection = SerialConnection(args.port, settings)
    try:
        connection.open()
    except (ConnectionError, SerialConfigError) as e:
        logger.error("%s", e)
        return 1

    renderer = TerminalRenderer(
        width=args.width,
        foreground=args.font_colour if sys.stdout.isatty() else None,
        background=args.background_colour if sys.stdout.isatty() else None,
    )
    monitor = MeterMonitor(
        FrameReader(connection),
        renderer,
        show_mode=args.show_mode,
        timeout=args.timeout,
    )

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    try:
        monitor.run(stop, on_exit=connection.close)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
