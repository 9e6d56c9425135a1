"""Tests for terminator synchronisation in the frame reader."""

import time

import pytest

from bk390a_mcp.exceptions import FrameOverrunError, NoConnectionError, ReaderError
from bk390a_mcp.protocol.decoder import decode
from bk390a_mcp.transport.serial_connection import FrameReader

FRAME = bytes([0x00, 0x30, 0x30, 0x32, 0x35, 0x3B, 0x00, 0x00, 0x00])
LF = b"\n"


class FakeSource:
    """Byte source that replays a buffer, then reports silence."""

    def __init__(self, data: bytes, gaps: set[int] | None = None):
        self._data = data
        self._pos = 0
        # Positions before which one empty read is returned.
        self._gaps = set(gaps or ())
        self.reads = 0

    def read_byte(self) -> bytes:
        self.reads += 1
        if self._pos in self._gaps:
            self._gaps.discard(self._pos)
            return b""
        if self._pos >= len(self._data):
            return b""
        byte = self._data[self._pos : self._pos + 1]
        self._pos += 1
        return byte


class SlowSource(FakeSource):
    """Delivers the first byte late, then the rest at a steady pace."""

    def __init__(self, data: bytes, first_delay: float, byte_delay: float):
        super().__init__(data)
        self._first_delay = first_delay
        self._byte_delay = byte_delay

    def read_byte(self) -> bytes:
        time.sleep(self._first_delay if self.reads == 0 else self._byte_delay)
        return super().read_byte()


def test_complete_frame():
    frame = FrameReader(FakeSource(FRAME + LF)).read_frame(0.05)
    assert frame.data == FRAME


def test_terminator_not_included():
    frame = FrameReader(FakeSource(FRAME + LF + FRAME + LF)).read_frame(0.05)
    assert len(frame.data) == 9
    assert 0x0A not in frame.data


def test_consecutive_frames():
    reader = FrameReader(FakeSource(FRAME + LF + FRAME[:8] + b"\x31" + LF))
    assert reader.read_frame(0.05).data == FRAME
    assert reader.read_frame(0.05).data[-1] == 0x31


def test_silence_is_no_connection():
    with pytest.raises(NoConnectionError):
        FrameReader(FakeSource(b"")).read_frame(0.01)


def test_ten_bytes_before_terminator_is_overrun():
    """Ten non-terminator bytes then a terminator never yields a frame."""
    source = FakeSource(FRAME + b"\x30" + LF)
    with pytest.raises(FrameOverrunError) as excinfo:
        FrameReader(source).read_frame(0.05)
    assert len(excinfo.value.collected) == 10
    assert isinstance(excinfo.value, ReaderError)


def test_leading_fragment_is_dropped():
    """Attaching mid-stream drops the partial frame before the first terminator."""
    frame = FrameReader(FakeSource(FRAME[5:] + LF + FRAME + LF)).read_frame(0.05)
    assert frame.data == FRAME


def test_short_reads_are_retried():
    """Empty reads mid-frame are not errors while time remains."""
    source = FakeSource(FRAME + LF, gaps={3, 7, 9})
    frame = FrameReader(source).read_frame(1.0)
    assert frame.data == FRAME


def test_partial_frame_at_deadline_is_overrun():
    with pytest.raises(FrameOverrunError) as excinfo:
        FrameReader(FakeSource(FRAME[:4])).read_frame(0.02)
    assert excinfo.value.collected == FRAME[:4]


def test_no_state_between_calls():
    """An overrun does not leak bytes into the next frame."""
    reader = FrameReader(FakeSource(FRAME + FRAME + LF + FRAME + LF))
    with pytest.raises(FrameOverrunError):
        reader.read_frame(0.05)
    # The rest of the stream resynchronises on the next terminator.
    assert reader.read_frame(0.05).data == FRAME


def test_read_frame_decodes():
    m = decode(FrameReader(FakeSource(FRAME + LF)).read_frame(0.05))
    assert m.raw_value == 25


def test_slow_first_byte_leaves_full_time_for_the_frame():
    """The wait for activity and the frame collection have separate deadlines."""
    source = SlowSource(FRAME + LF, first_delay=0.15, byte_delay=0.01)
    frame = FrameReader(source).read_frame(0.2)
    assert frame.data == FRAME


def test_stalled_frame_after_first_byte_is_overrun():
    source = SlowSource(FRAME[:3], first_delay=0.0, byte_delay=0.0)
    started = time.monotonic()
    with pytest.raises(FrameOverrunError):
        FrameReader(source).read_frame(0.05)
    assert time.monotonic() - started < 1.0
