"""Function codes, flag bits and the function/range decode matrix.

The meter's data sheet describes the decimal point position and magnitude
prefix as a matrix of function byte x range nibble. Two functions reuse the
status "judge" bit as a secondary selector (frequency vs RPM, Celsius vs
Fahrenheit), so the tables here are keyed by ``(function, judge)`` first and
by range nibble second.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, IntFlag
from typing import Mapping


class Function(IntEnum):
    """Function byte values."""

    VOLTAGE = 0x3B
    CURRENT_UA = 0x3D
    CURRENT_MA = 0x39
    CURRENT_A = 0x3F
    OHMS = 0x33
    CONTINUITY = 0x35
    DIODE = 0x31
    FQ_RPM = 0x32
    CAPACITANCE = 0x36
    TEMPERATURE = 0x34
    ADP0 = 0x3E
    ADP1 = 0x3C
    ADP2 = 0x38
    ADP3 = 0x3A


class Status(IntFlag):
    OL = 0x01
    BATT = 0x02
    SIGN = 0x04
    JUDGE = 0x08


class Option1(IntFlag):
    VAHZ = 0x01
    PMIN = 0x04
    PMAX = 0x08


class Option2(IntFlag):
    APO = 0x01
    AUTO = 0x02
    AC = 0x04
    DC = 0x08


class Prefix(Enum):
    """Metric magnitude prefix with its display symbol and power of ten."""

    NONE = ("", 0)
    NANO = ("n", -9)
    MICRO = ("µ", -6)
    MILLI = ("m", -3)
    KILO = ("k", 3)
    MEGA = ("M", 6)

    def __init__(self, symbol: str, exponent: int) -> None:
        self.symbol = symbol
        self.exponent = exponent


class Mode(Enum):
    """Measurement mode, valued by its display label."""

    VOLTS = "Volts"
    AMPS = "Amps"
    RESISTANCE = "Resistance"
    CONTINUITY = "Continuity"
    DIODE = "Diode"
    FREQUENCY = "Frequency"
    RPM = "RPM"
    CAPACITANCE = "Capacitance"
    TEMPERATURE = "Temperature"
    ADP0 = "ADP0"
    ADP1 = "ADP1"
    ADP2 = "ADP2"
    ADP3 = "ADP3"

    @property
    def label(self) -> str:
        return self.value


OHM = "\u03a9"
CELSIUS = "°C"
FAHRENHEIT = "°F"

# Decimal places used where the meter gives the function a single range.
DEFAULT_RANGE = (0, Prefix.NONE)


@dataclass(frozen=True)
class Decoding:
    """How one function (and judge state) maps onto mode, unit and ranges.

    ``ranges`` maps range nibble -> (decimal places, prefix). When it is
    ``None`` the function has a single fixed scale given by ``fixed``.
    """

    mode: Mode
    unit: str
    ranges: Mapping[int, tuple[int, Prefix]] | None = None
    fixed: tuple[int, Prefix] = DEFAULT_RANGE

    def scale(self, range_index: int) -> tuple[int, Prefix] | None:
        """Return (decimal places, prefix) for a range nibble, or None if undefined."""
        if self.ranges is None:
            return self.fixed
        return self.ranges.get(range_index)


def _table(dps: list[int], prefixes: list[Prefix]) -> dict[int, tuple[int, Prefix]]:
    return {i: (d, p) for i, (d, p) in enumerate(zip(dps, prefixes))}


_N, _U, _M, _K, _MEG = Prefix.NANO, Prefix.MICRO, Prefix.MILLI, Prefix.KILO, Prefix.MEGA
_NONE = Prefix.NONE

# (function, judge) -> Decoding. ``judge`` is None where the bit is ignored.
DECODE_TABLE: dict[tuple[Function, bool | None], Decoding] = {
    (Function.VOLTAGE, None): Decoding(
        Mode.VOLTS, "V",
        _table([1, 3, 2, 1, 0], [_M, _NONE, _NONE, _NONE, _NONE]),
    ),
    (Function.CURRENT_UA, None): Decoding(
        Mode.AMPS, "A", _table([2, 1], [_M, _M]),
    ),
    (Function.CURRENT_MA, None): Decoding(
        Mode.AMPS, "A", _table([1, 0], [_U, _U]),
    ),
    (Function.CURRENT_A, None): Decoding(
        Mode.AMPS, "A", fixed=(2, _NONE),
    ),
    (Function.OHMS, None): Decoding(
        Mode.RESISTANCE, OHM,
        _table([1, 3, 2, 1, 3, 2], [_NONE, _K, _K, _K, _MEG, _MEG]),
    ),
    (Function.CONTINUITY, None): Decoding(
        Mode.CONTINUITY, OHM, fixed=(1, _NONE),
    ),
    (Function.DIODE, None): Decoding(
        Mode.DIODE, "V", fixed=(3, _NONE),
    ),
    (Function.FQ_RPM, True): Decoding(
        Mode.FREQUENCY, "Hz",
        _table([3, 2, 1, 3, 2, 1], [_K, _K, _K, _MEG, _MEG, _MEG]),
    ),
    (Function.FQ_RPM, False): Decoding(
        Mode.RPM, "rpm",
        _table([2, 1, 3, 2, 1, 0], [_K, _K, _MEG, _MEG, _MEG, _MEG]),
    ),
    (Function.CAPACITANCE, None): Decoding(
        Mode.CAPACITANCE, "F",
        _table([3, 2, 1, 3, 2, 1, 3, 2], [_N, _N, _N, _U, _U, _U, _M, _M]),
    ),
    (Function.TEMPERATURE, True): Decoding(Mode.TEMPERATURE, CELSIUS),
    (Function.TEMPERATURE, False): Decoding(Mode.TEMPERATURE, FAHRENHEIT),
    (Function.ADP0, None): Decoding(Mode.ADP0, ""),
    (Function.ADP1, None): Decoding(Mode.ADP1, ""),
    (Function.ADP2, None): Decoding(Mode.ADP2, ""),
    (Function.ADP3, None): Decoding(Mode.ADP3, ""),
}


def lookup_decoding(function: Function, judge: bool) -> Decoding:
    """Find the table entry for a function, honouring the judge bit where it matters."""
    entry = DECODE_TABLE.get((function, judge))
    if entry is None:
        entry = DECODE_TABLE[(function, None)]
    return entry


def describe_table() -> list[dict]:
    """Render the decode matrix as plain data, one row per (function, judge)."""
    rows = []
    for (function, judge), decoding in DECODE_TABLE.items():
        if decoding.ranges is None:
            ranges = {"*": _describe_scale(decoding.fixed)}
        else:
            ranges = {str(i): _describe_scale(s) for i, s in decoding.ranges.items()}
        rows.append({
            "function": function.name,
            "code": f"0x{function.value:02X}",
            "judge": judge,
            "mode": decoding.mode.label,
            "unit": decoding.unit,
            "ranges": ranges,
        })
    return rows


def _describe_scale(scale: tuple[int, Prefix]) -> dict:
    dps, prefix = scale
    return {"decimal_places": dps, "prefix": prefix.symbol}
