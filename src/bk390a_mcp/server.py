"""MCP server entry point for the BK Precision 390A multimeter.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .exceptions import DecodeError, SerialConfigError
from .monitor import MeterMonitor
from .protocol.decoder import decode
from .protocol.formatter import DisplayLines, format_measurement
from .protocol.framing import RawFrame
from .protocol.functions import describe_table
from .transport.serial_connection import (
    DEFAULT_SERIAL_PARAMS,
    READ_TIMEOUT_S,
    FrameReader,
    SerialConnection,
    parse_serial_params,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "bk390a",
    instructions="MCP server for the BK Precision 390A multimeter RS-232 data stream",
)

# Global connection state
_connection: SerialConnection | None = None
_monitor: MeterMonitor | None = None


def _get_monitor() -> MeterMonitor:
    """Get the monitor for the open connection, raising if not connected."""
    if _connection is None or not _connection.connected or _monitor is None:
        raise RuntimeError(
            "Not connected to meter. Use the 'connect' tool first."
        )
    return _monitor


def _log_display(lines: DisplayLines) -> None:
    logger.debug("Display: %r / %r", lines.value_line, lines.mode_line)


def _lines_dict(lines: DisplayLines) -> dict[str, str]:
    return {"value_line": lines.value_line, "mode_line": lines.mode_line}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str, serial_params: str = DEFAULT_SERIAL_PARAMS) -> dict[str, Any]:
    """Open the serial port the meter's RS-232 cable is attached to.

    Args:
        port: Serial device, e.g. /dev/ttyUSB0, COM4, or just 4 for COM4.
        serial_params: Line settings as <baud>:<bits><parity><stop>,
            default 2400:7o1.
    """
    global _connection, _monitor
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.port,
        }

    try:
        settings = parse_serial_params(serial_params)
    except SerialConfigError as e:
        return {"error": str(e)}

    connection = SerialConnection(port, settings)
    connection.open()

    _connection = connection
    _monitor = MeterMonitor(FrameReader(connection), _log_display, show_mode=True)
    return {
        "connected": True,
        "port": connection.port,
        "settings": str(settings),
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial port."""
    global _connection, _monitor
    if _connection is not None:
        _connection.close()
    _connection = None
    _monitor = None
    return {"disconnected": True}


# ─── MEASUREMENT TOOLS ───────────────────────────────────────────────

@mcp.tool()
def read_measurement(timeout: float = READ_TIMEOUT_S, show_mode: bool = True) -> dict[str, Any]:
    """Wait for the next frame from the meter and decode it.

    If no usable frame arrives the result carries an ``error`` and the
    display that is still showing (the last good reading, or N/C when the
    meter is silent).

    Args:
        timeout: Seconds to wait for the frame.
        show_mode: Include the mode label as the second display line.
    """
    monitor = _get_monitor()
    monitor.display.show_mode = show_mode
    monitor.timeout = timeout
    lines = monitor.run_cycle()

    if monitor.last_error is not None:
        return {
            "error": str(monitor.last_error),
            "error_type": type(monitor.last_error).__name__,
            "display": _lines_dict(lines),
        }

    return {
        "measurement": monitor.display.measurement.to_dict(),
        "display": _lines_dict(lines),
    }


@mcp.tool()
def decode_frame(frame_hex: str, show_mode: bool = True) -> dict[str, Any]:
    """Decode a captured 9-byte frame given as hex, without a meter attached.

    Args:
        frame_hex: Frame bytes excluding the line-feed terminator,
            e.g. "00 30 30 32 35 3b 00 00 00".
        show_mode: Include the mode label as the second display line.
    """
    try:
        frame = RawFrame.from_hex(frame_hex)
    except ValueError as e:
        return {"error": f"Invalid frame: {e}"}

    try:
        measurement = decode(frame)
    except DecodeError as e:
        return {"error": str(e), "error_type": type(e).__name__}

    return {
        "measurement": measurement.to_dict(),
        "display": _lines_dict(format_measurement(measurement, show_mode)),
    }


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("bk390a://device/status")
def resource_device_status() -> str:
    """Connection state, port settings and the current display."""
    if _connection is None or not _connection.connected or _monitor is None:
        return json.dumps({"connected": False})

    return json.dumps({
        "connected": True,
        "port": _connection.port,
        "settings": _connection.settings.to_dict(),
        "display": _lines_dict(_monitor.display.lines),
    })


@mcp.resource("bk390a://catalog/functions")
def resource_function_catalog() -> str:
    """Function codes with their mode, unit and range scaling."""
    functions = describe_table()
    return json.dumps({"functions": functions, "count": len(functions)})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def explain_reading(context: str = "") -> str:
    """Take a reading and explain what the meter is showing.

    Args:
        context: What is being measured, e.g. "5V rail on a Raspberry Pi".
    """
    return f"""Read the meter using the read_measurement tool and explain the result.
Measurement context: {context or "not given"}

Consider:
- Mode, unit and magnitude prefix, and the value in base units
- Whether the reading is overloaded (O.L.) and a higher range is needed
- AC/DC, auto-range and min/max hold flags
- Low battery, which makes readings unreliable

If the tool reports an error, suggest checking the RS-232 cable and port settings."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
