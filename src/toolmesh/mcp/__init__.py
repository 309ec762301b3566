"""MCP client, transports and connection router."""

from .client import BaseMCPClient
from .factory import create_client, probe_client, test_connection
from .formatters import build_tool_descriptions, format_tool_result, parse_tool_calls
from .protocol import JSONRPCMessage, RequestId
from .proxy import is_local_host, proxy_endpoint, should_auto_proxy
from .router import ClientFactory, MCPRouter
from .transports import (
    DualChannelMCPClient,
    LocalProcessMCPClient,
    StreamFrameReader,
    StreamingMCPClient,
)
from .types import (
    ConnectionSummary,
    ParsedToolCall,
    PendingRequest,
    ServerTool,
    ToolCallResult,
    ToolSchema,
)

__all__ = [
    # Protocol
    "JSONRPCMessage",
    "RequestId",
    # Types
    "ToolSchema",
    "ToolCallResult",
    "PendingRequest",
    "ServerTool",
    "ConnectionSummary",
    "ParsedToolCall",
    # Clients
    "BaseMCPClient",
    "DualChannelMCPClient",
    "StreamingMCPClient",
    "StreamFrameReader",
    "LocalProcessMCPClient",
    "create_client",
    "probe_client",
    "test_connection",
    # Router
    "MCPRouter",
    "ClientFactory",
    "is_local_host",
    "should_auto_proxy",
    "proxy_endpoint",
    # Formatters
    "build_tool_descriptions",
    "parse_tool_calls",
    "format_tool_result",
]
