"""Display text for decoded measurements.

The renderer receives two lines per cycle: the value line (sign, digits,
prefix and unit) and an optional mode line. Padding to the display width is
the renderer's job.
"""

from __future__ import annotations

from dataclasses import dataclass

from .decoder import Measurement

OVERLOAD_TEXT = "O.L."
DISCONNECTED_TEXT = "N/C"
DISCONNECTED_MODE_TEXT = "Check RS232"


@dataclass(frozen=True)
class DisplayLines:
    """The two text lines handed to the renderer."""

    value_line: str = ""
    mode_line: str = ""


def format_value(m: Measurement) -> str:
    """Render the value line, e.g. ``" 2.5mV"`` or ``"-0.125V"``."""
    if m.overload:
        return OVERLOAD_TEXT
    sign = "-" if m.signed else " "
    dps = m.decimal_places
    if dps:
        whole, frac = divmod(m.raw_value, 10 ** dps)
        digits = f"{whole}.{frac:0{dps}d}"
    else:
        digits = str(m.raw_value)
    return f"{sign}{digits}{m.prefix.symbol}{m.unit}"


def format_measurement(m: Measurement, show_mode: bool = False) -> DisplayLines:
    return DisplayLines(
        value_line=format_value(m),
        mode_line=m.mode.label if show_mode else "",
    )


class DisplayState:
    """Holds the lines currently on display.

    A cycle that fails to produce a trustworthy reading calls :meth:`hold`,
    leaving the previous lines in place rather than a partial update.
    """

    def __init__(self, show_mode: bool = False) -> None:
        self.show_mode = show_mode
        self._lines = DisplayLines()
        self._measurement: Measurement | None = None

    @property
    def lines(self) -> DisplayLines:
        return self._lines

    @property
    def measurement(self) -> Measurement | None:
        """The measurement behind the current lines, if any."""
        return self._measurement

    def show(self, m: Measurement) -> DisplayLines:
        self._measurement = m
        self._lines = format_measurement(m, self.show_mode)
        return self._lines

    def show_disconnected(self) -> DisplayLines:
        self._measurement = None
        # The hint is shown even when the mode line is disabled.
        self._lines = DisplayLines(DISCONNECTED_TEXT, DISCONNECTED_MODE_TEXT)
        return self._lines

    def hold(self) -> DisplayLines:
        return self._lines
