"""Tests for the read/decode/display cycle."""

import threading

from bk390a_mcp.exceptions import (
    FrameOverrunError,
    NoConnectionError,
    UnknownFunctionError,
)
from bk390a_mcp.monitor import MeterMonitor
from bk390a_mcp.protocol.formatter import DisplayLines
from bk390a_mcp.protocol.framing import RawFrame

GOOD = RawFrame.from_hex("00 30 30 32 35 3b 00 00 00")
UNKNOWN = RawFrame.from_hex("00 39 39 39 39 37 00 00 00")
OVERLOAD = RawFrame.from_hex("00 30 30 30 30 3b 31 00 00")


class ScriptedReader:
    """Returns frames or raises errors in order."""

    def __init__(self, outcomes):
        self._outcomes = list(outcomes)

    def read_frame(self, timeout):
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_monitor(outcomes, show_mode=True):
    rendered = []
    monitor = MeterMonitor(ScriptedReader(outcomes), rendered.append,
                           show_mode=show_mode, timeout=0.01)
    return monitor, rendered


def test_cycle_renders_measurement():
    monitor, rendered = make_monitor([GOOD])
    lines = monitor.run_cycle()
    assert lines == DisplayLines(" 2.5mV", "Volts")
    assert rendered == [lines]
    assert monitor.last_error is None


def test_overload_cycle():
    monitor, rendered = make_monitor([OVERLOAD], show_mode=False)
    assert monitor.run_cycle() == DisplayLines("O.L.", "")


def test_no_connection_shows_disconnected():
    monitor, rendered = make_monitor([GOOD, NoConnectionError("silent")])
    monitor.run_cycle()
    assert monitor.run_cycle() == DisplayLines("N/C", "Check RS232")
    assert isinstance(monitor.last_error, NoConnectionError)


def test_overrun_holds_previous_display():
    monitor, rendered = make_monitor([GOOD, FrameOverrunError(bytes(10))])
    first = monitor.run_cycle()
    assert monitor.run_cycle() == first
    assert isinstance(monitor.last_error, FrameOverrunError)


def test_unknown_function_holds_previous_display():
    monitor, rendered = make_monitor([GOOD, UNKNOWN, GOOD])
    first = monitor.run_cycle()
    assert monitor.run_cycle() == first
    assert isinstance(monitor.last_error, UnknownFunctionError)
    assert monitor.display.measurement.raw_value == 25
    monitor.run_cycle()
    assert monitor.last_error is None
    assert len(rendered) == 3


def test_run_stops_and_releases():
    """The loop checks the stop flag each cycle and calls on_exit once."""
    stop = threading.Event()
    released = []
    rendered = []

    def render(lines):
        rendered.append(lines)
        if len(rendered) == 2:
            stop.set()

    monitor = MeterMonitor(ScriptedReader([GOOD, GOOD, GOOD]), render)
    monitor.run(stop, on_exit=lambda: released.append(True))
    assert len(rendered) == 2
    assert released == [True]


def test_run_releases_on_interrupt():
    released = []

    def render(lines):
        raise KeyboardInterrupt

    monitor = MeterMonitor(ScriptedReader([GOOD]), render)
    try:
        monitor.run(threading.Event(), on_exit=lambda: released.append(True))
    except KeyboardInterrupt:
        pass
    assert released == [True]
