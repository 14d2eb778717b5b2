"""Upstream streaming recognition: protocol adapter and per-role connection."""
from .connection import ConnectionState, StreamConnection
from .protocol import StreamMessage, build_config_message, parse_stream_message

__all__ = [
    "ConnectionState",
    "StreamConnection",
    "StreamMessage",
    "build_config_message",
    "parse_stream_message",
]
