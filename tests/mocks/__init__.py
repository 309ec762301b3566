"""Test mocks for toolmesh.

Provides mock implementations for testing:
- MockMCPServer: MCP server answering over httpx.MockTransport
- FakeMCPClient: Scriptable client for router tests
"""

from .mock_mcp_server import (
    BASE_URL,
    FakeMCPClient,
    MockMCPServer,
    build_response,
    echo_tool,
    fake_client_factory,
    server_config,
)

__all__ = [
    "BASE_URL",
    "FakeMCPClient",
    "MockMCPServer",
    "build_response",
    "echo_tool",
    "fake_client_factory",
    "server_config",
]
