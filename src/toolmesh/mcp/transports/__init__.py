"""MCP client transports."""

from .dual_channel import DualChannelMCPClient
from .http_base import HTTPMCPClient
from .local_process import LocalProcessMCPClient
from .streaming import SESSION_HEADER, StreamFrameReader, StreamingMCPClient

__all__ = [
    "HTTPMCPClient",
    "DualChannelMCPClient",
    "StreamingMCPClient",
    "StreamFrameReader",
    "SESSION_HEADER",
    "LocalProcessMCPClient",
]
