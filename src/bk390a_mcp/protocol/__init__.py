"""Protocol layer: frame layout, decode matrix, measurement decoding and display text."""

from .framing import RawFrame, FRAME_SIZE, TERMINATOR
from .decoder import Measurement, decode
from .formatter import DisplayLines, DisplayState, format_measurement
