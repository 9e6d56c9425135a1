"""Tests for the MCP tools and resources."""

import json

import pytest

from bk390a_mcp import server

FRAME_HEX = "00 30 30 32 35 3b 00 00 00"


@pytest.fixture(autouse=True)
def disconnected():
    server.disconnect()
    yield
    server.disconnect()


def test_decode_frame_tool():
    result = server.decode_frame(FRAME_HEX)
    assert result["measurement"]["mode"] == "Volts"
    assert result["measurement"]["raw_value"] == 25
    assert result["display"] == {"value_line": " 2.5mV", "mode_line": "Volts"}


def test_decode_frame_without_mode_line():
    result = server.decode_frame(FRAME_HEX, show_mode=False)
    assert result["display"]["mode_line"] == ""


def test_decode_frame_unknown_function():
    result = server.decode_frame("00 30 30 32 35 37 00 00 00")
    assert result["error_type"] == "UnknownFunctionError"


def test_decode_frame_bad_hex():
    assert "error" in server.decode_frame("00 30 zz")
    assert "error" in server.decode_frame("00 30")


def test_read_requires_connection():
    with pytest.raises(RuntimeError):
        server.read_measurement()


def test_connect_rejects_bad_params():
    assert "error" in server.connect("loop://", "2400:7z1")


def test_read_measurement_over_loopback():
    result = server.connect("loop://")
    assert result["connected"]
    assert result["settings"] == "2400:7o1"

    server._connection._serial.write(bytes.fromhex(FRAME_HEX) + b"\n")
    reading = server.read_measurement(timeout=1.0)
    assert reading["measurement"]["prefix"] == "m"
    assert reading["display"]["value_line"] == " 2.5mV"

    status = json.loads(server.resource_device_status())
    assert status["connected"]
    assert status["display"]["value_line"] == " 2.5mV"


def test_read_measurement_silence():
    server.connect("loop://")
    reading = server.read_measurement(timeout=0.01)
    assert reading["error_type"] == "NoConnectionError"
    assert reading["display"]["value_line"] == "N/C"


def test_connect_twice():
    server.connect("loop://")
    assert server.connect("loop://")["message"] == "Already connected"


def test_status_when_disconnected():
    assert json.loads(server.resource_device_status()) == {"connected": False}


def test_function_catalog():
    catalog = json.loads(server.resource_function_catalog())
    assert catalog["count"] == len(catalog["functions"])
    codes = {row["code"] for row in catalog["functions"]}
    assert "0x32" in codes


def test_explain_reading_prompt():
    assert "read_measurement" in server.explain_reading("battery")
