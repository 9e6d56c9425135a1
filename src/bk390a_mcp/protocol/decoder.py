"""Frame decoding: raw 9-byte frames into measurements."""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import UnknownFunctionError, UnknownRangeError
from .framing import RawFrame
from .functions import (
    Function,
    Mode,
    Option1,
    Option2,
    Prefix,
    Status,
    lookup_decoding,
)

MAX_DECIMAL_PLACES = 3


@dataclass(frozen=True)
class Measurement:
    """One decoded meter reading.

    When ``overload`` is set the numeric fields are not meaningful for display.
    """

    function: Function
    mode: Mode
    unit: str
    prefix: Prefix
    decimal_places: int
    raw_value: int
    signed: bool = False
    overload: bool = False
    low_battery: bool = False
    auto_range: bool = False
    ac: bool = False
    dc: bool = False
    min_hold: bool = False
    max_hold: bool = False
    auto_power_off: bool = False
    va_hz: bool = False
    range_index: int = 0

    def __post_init__(self) -> None:
        clamped = min(max(self.decimal_places, 0), MAX_DECIMAL_PLACES)
        object.__setattr__(self, "decimal_places", clamped)

    @property
    def value(self) -> float | None:
        """Displayed value in units of ``prefix`` + ``unit``."""
        if self.overload:
            return None
        value = self.raw_value / 10 ** self.decimal_places
        return -value if self.signed else value

    @property
    def base_value(self) -> float | None:
        """Value scaled to the bare unit (e.g. mV -> V)."""
        if self.value is None:
            return None
        return self.value * 10.0 ** self.prefix.exponent

    def to_dict(self) -> dict:
        return {
            "function": self.function.name,
            "mode": self.mode.label,
            "unit": self.unit,
            "prefix": self.prefix.symbol,
            "decimal_places": self.decimal_places,
            "raw_value": self.raw_value,
            "value": self.value,
            "base_value": self.base_value,
            "signed": self.signed,
            "overload": self.overload,
            "low_battery": self.low_battery,
            "auto_range": self.auto_range,
            "ac": self.ac,
            "dc": self.dc,
            "min_hold": self.min_hold,
            "max_hold": self.max_hold,
            "auto_power_off": self.auto_power_off,
            "va_hz": self.va_hz,
            "range_index": self.range_index,
        }


def decode(frame: RawFrame) -> Measurement:
    """Decode a raw frame into a :class:`Measurement`.

    Raises:
        UnknownFunctionError: The function byte is outside the documented set.
        UnknownRangeError: The range nibble has no table entry for the function
            and the frame is not an overload.
    """
    try:
        function = Function(frame.function)
    except ValueError:
        raise UnknownFunctionError(frame.function) from None

    status = Status(frame.status & 0x0F)
    option1 = Option1(frame.option1 & 0x0D)
    option2 = Option2(frame.option2 & 0x0F)

    decoding = lookup_decoding(function, Status.JUDGE in status)
    scale = decoding.scale(frame.range_index)
    if scale is None:
        # Overload is shown whatever the range byte says.
        if Status.OL not in status:
            raise UnknownRangeError(frame.function, frame.range_index)
        scale = decoding.fixed
    decimal_places, prefix = scale

    d3, d2, d1, d0 = frame.digits
    raw_value = d3 * 1000 + d2 * 100 + d1 * 10 + d0

    return Measurement(
        function=function,
        mode=decoding.mode,
        unit=decoding.unit,
        prefix=prefix,
        decimal_places=decimal_places,
        raw_value=raw_value,
        signed=Status.SIGN in status,
        overload=Status.OL in status,
        low_battery=Status.BATT in status,
        auto_range=Option2.AUTO in option2,
        ac=Option2.AC in option2,
        dc=Option2.DC in option2,
        min_hold=Option1.PMIN in option1,
        max_hold=Option1.PMAX in option1,
        auto_power_off=Option2.APO in option2,
        va_hz=Option1.VAHZ in option1,
        range_index=frame.range_index,
    )
