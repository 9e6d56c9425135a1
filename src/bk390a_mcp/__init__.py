"""Decoder and MCP server for the BK Precision 390A multimeter RS-232 data stream."""

__version__ = "0.5.0"
