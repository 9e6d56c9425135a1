"""Exceptions raised while reading and decoding meter frames."""

from __future__ import annotations


class BK390AError(Exception):
    """Base exception for BK-390A operations."""


class ReaderError(BK390AError):
    """A complete frame could not be collected this cycle."""


class NoConnectionError(ReaderError):
    """No serial activity was observed within the wait window."""


class FrameOverrunError(ReaderError):
    """Bytes arrived but no terminated 9-byte frame was formed."""

    def __init__(self, collected: bytes) -> None:
        self.collected = collected
        super().__init__(
            f"No complete frame after {len(collected)} byte(s): "
            f"{collected.hex(' ') if collected else '(empty)'}"
        )


class DecodeError(BK390AError):
    """A frame was received but cannot be turned into a trustworthy reading."""


class UnknownFunctionError(DecodeError):
    """The function byte is not one the meter documents."""

    def __init__(self, function: int) -> None:
        self.function = function
        super().__init__(f"Unknown function byte 0x{function:02X}")


class UnknownRangeError(DecodeError):
    """The range nibble has no entry for the selected function."""

    def __init__(self, function: int, range_index: int) -> None:
        self.function = function
        self.range_index = range_index
        super().__init__(
            f"Range {range_index} is not defined for function 0x{function:02X}"
        )


class SerialConfigError(BK390AError, ValueError):
    """The serial parameter string could not be parsed."""
