"""Serial transport and frame synchronisation."""

from .serial_connection import (
    FrameReader,
    SerialConnection,
    SerialSettings,
    parse_serial_params,
    resolve_port,
)
