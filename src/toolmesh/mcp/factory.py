"""Client construction by transport kind."""

import httpx

from toolmesh.config.models import ClientSettings, MCPServerConfig
from toolmesh.errors import create_error
from toolmesh.logging import MeshLogger
from toolmesh.types import LogLevel, ToolSchema, TransportKind

from .client import BaseMCPClient
from .transports import DualChannelMCPClient, LocalProcessMCPClient, StreamingMCPClient


def create_client(
    server: MCPServerConfig,
    settings: ClientSettings | None = None,
    logger: MeshLogger | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> BaseMCPClient:
    """Create the client matching the server's transport.

    Args:
        server: Server definition
        settings: Protocol settings and timeouts
        logger: Optional MeshLogger instance
        http_client: Optional shared httpx client for network transports

    Raises:
        ToolmeshError: TRANSPORT_UNKNOWN for an unrecognised transport,
            CONFIG_INVALID when a required field is missing
    """
    try:
        kind = TransportKind(server.transport)
    except ValueError:
        raise create_error(
            "TRANSPORT_UNKNOWN",
            transport=server.transport,
            server_id=server.id,
        ) from None

    if kind == TransportKind.DUAL_CHANNEL:
        return DualChannelMCPClient(server, settings, logger, http_client=http_client)
    if kind == TransportKind.STREAMING:
        return StreamingMCPClient(server, settings, logger, http_client=http_client)
    return LocalProcessMCPClient(server, settings, logger)


async def test_connection(
    server: MCPServerConfig,
    settings: ClientSettings | None = None,
    logger: MeshLogger | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> list[ToolSchema]:
    """Connect, handshake and list tools with a throwaway client.

    The client is always disconnected afterwards. On failure the original
    error is re-raised even if the cleanup disconnect fails too.

    Returns:
        Tools the server exposes
    """
    return await probe_client(create_client(server, settings, logger, http_client))


async def probe_client(client: BaseMCPClient) -> list[ToolSchema]:
    """Run connect, handshake and discovery on ``client``, then disconnect it."""
    try:
        await client.connect()
        await client.initialize()
        tools = await client.list_tools()
    except Exception:
        try:
            await client.disconnect()
        except Exception as cleanup_error:
            client._log(
                LogLevel.WARN,
                f"Disconnect after failed connection test raised: {cleanup_error}",
            )
        raise

    await client.disconnect()
    return tools


# Not a pytest test function
test_connection.__test__ = False  # type: ignore[attr-defined]
