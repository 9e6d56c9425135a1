"""Raw frame container for the BK-390A serial data stream.

The meter emits one frame per measurement cycle, 9 payload bytes followed by
a line feed::

    +-------+--------+--------+--------+--------+----------+--------+---------+---------+----+
    | Range | Digit3 | Digit2 | Digit1 | Digit0 | Function | Status | Option1 | Option2 | LF |
    +-------+--------+--------+--------+--------+----------+--------+---------+---------+----+

- Range: low nibble selects the range within the function
- Digits: low nibble of each byte is one decimal digit, most significant first
- Function: measurement function code (compared as a whole byte)
- Status / Option1 / Option2: bit flags, see :mod:`.functions`
"""

from __future__ import annotations

from dataclasses import dataclass

FRAME_SIZE = 9
TERMINATOR = 0x0A

BYTE_RANGE = 0
BYTE_DIGIT_3 = 1
BYTE_DIGIT_2 = 2
BYTE_DIGIT_1 = 3
BYTE_DIGIT_0 = 4
BYTE_FUNCTION = 5
BYTE_STATUS = 6
BYTE_OPTION_1 = 7
BYTE_OPTION_2 = 8


@dataclass(frozen=True)
class RawFrame:
    """The 9 bytes preceding a frame terminator."""

    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != FRAME_SIZE:
            raise ValueError(
                f"Frame must be {FRAME_SIZE} bytes, got {len(self.data)}"
            )
        object.__setattr__(self, "data", bytes(self.data))

    def __repr__(self) -> str:
        return f"RawFrame({self.data.hex(' ')})"

    @classmethod
    def from_hex(cls, text: str) -> RawFrame:
        """Build a frame from a hex dump such as ``"00 30 30 32 35 3b 00 00 00"``."""
        return cls(bytes.fromhex("".join(text.split())))

    @property
    def range_index(self) -> int:
        return self.data[BYTE_RANGE] & 0x0F

    @property
    def digits(self) -> tuple[int, int, int, int]:
        """Digit nibbles, most significant first."""
        return tuple(
            self.data[i] & 0x0F
            for i in (BYTE_DIGIT_3, BYTE_DIGIT_2, BYTE_DIGIT_1, BYTE_DIGIT_0)
        )

    @property
    def function(self) -> int:
        return self.data[BYTE_FUNCTION]

    @property
    def status(self) -> int:
        return self.data[BYTE_STATUS]

    @property
    def option1(self) -> int:
        return self.data[BYTE_OPTION_1]

    @property
    def option2(self) -> int:
        return self.data[BYTE_OPTION_2]
