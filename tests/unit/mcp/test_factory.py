"""Unit tests for client construction and the local-process placeholder."""

import pytest

from tests.mocks import MockMCPServer, server_config
from toolmesh.errors import ToolmeshError
from toolmesh.mcp import (
    DualChannelMCPClient,
    LocalProcessMCPClient,
    StreamingMCPClient,
    create_client,
    test_connection,
)
from toolmesh.types import ClientEvent, TransportKind


class TestCreateClient:
    @pytest.mark.parametrize(
        ("transport", "expected"),
        [
            (TransportKind.DUAL_CHANNEL, DualChannelMCPClient),
            ("streaming", StreamingMCPClient),
        ],
    )
    def test_selects_transport(self, transport, expected, logger) -> None:
        client = create_client(server_config(transport=transport), logger=logger)
        assert type(client) is expected
        assert client.endpoint == "https://mcp.example.org/mcp"

    def test_local_process(self, logger) -> None:
        config = server_config(
            transport=TransportKind.LOCAL_PROCESS,
            endpoint=None,
            command="npx",
            args=["-y", "server-files"],
            env={"ROOT": "/tmp"},
        )
        client = create_client(config, logger=logger)

        assert isinstance(client, LocalProcessMCPClient)
        assert client.get_command_config() == {
            "command": "npx",
            "args": ["-y", "server-files"],
            "env": {"ROOT": "/tmp"},
        }

    def test_unknown_transport(self, logger) -> None:
        with pytest.raises(ToolmeshError) as exc_info:
            create_client(server_config(transport="carrier-pigeon"), logger=logger)

        assert exc_info.value.code == "TRANSPORT_UNKNOWN"
        assert str(exc_info.value) == "Unknown transport type: carrier-pigeon"

    @pytest.mark.parametrize("transport", [TransportKind.DUAL_CHANNEL, TransportKind.STREAMING])
    def test_network_transports_need_endpoint(self, transport, logger) -> None:
        with pytest.raises(ToolmeshError) as exc_info:
            create_client(server_config(transport=transport, endpoint=None), logger=logger)
        assert exc_info.value.code == "CONFIG_INVALID"

    def test_local_process_needs_command(self, logger) -> None:
        with pytest.raises(ToolmeshError) as exc_info:
            create_client(
                server_config(transport=TransportKind.LOCAL_PROCESS, endpoint=None),
                logger=logger,
            )
        assert str(exc_info.value) == "Stdio MCP server requires a command"


class TestLocalProcessClient:
    @pytest.fixture
    def client(self, logger) -> LocalProcessMCPClient:
        return LocalProcessMCPClient(
            server_config(transport=TransportKind.LOCAL_PROCESS, command="mcp-server"),
            logger=logger,
        )

    @pytest.mark.asyncio
    async def test_connect_unsupported(self, client: LocalProcessMCPClient) -> None:
        with pytest.raises(ToolmeshError) as exc_info:
            await client.connect()

        assert exc_info.value.code == "TRANSPORT_UNSUPPORTED"
        assert "not supported" in str(exc_info.value)
        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_send_request_not_connected(self, client: LocalProcessMCPClient) -> None:
        with pytest.raises(ToolmeshError) as exc_info:
            await client.send_request("tools/list")

        assert str(exc_info.value) == "Stdio client is not connected"

    @pytest.mark.asyncio
    async def test_disconnect_emits(self, client: LocalProcessMCPClient) -> None:
        events = []
        client.on(ClientEvent.DISCONNECTED, lambda: events.append("disconnected"))

        await client.disconnect()

        assert events == ["disconnected"]


class TestConnectionTest:
    @pytest.mark.asyncio
    async def test_returns_tools_and_disconnects(self, logger) -> None:
        mcp_server = MockMCPServer()
        async with mcp_server.http_client() as http:
            tools = await test_connection(
                server_config(transport=TransportKind.STREAMING), logger=logger, http_client=http
            )

        assert [tool.name for tool in tools] == ["echo"]

    @pytest.mark.asyncio
    async def test_reraises_original_error(self, logger) -> None:
        mcp_server = MockMCPServer()
        mcp_server.errors["initialize"] = (-32600, "nope")
        async with mcp_server.http_client() as http:
            with pytest.raises(ToolmeshError) as exc_info:
                await test_connection(
                    server_config(transport=TransportKind.STREAMING),
                    logger=logger,
                    http_client=http,
                )

        assert str(exc_info.value) == "MCP initialization failed: nope"
