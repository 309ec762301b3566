"""Unit tests for the transport-independent client base."""

import asyncio

import pytest

from tests.mocks import FakeMCPClient, echo_tool, server_config
from toolmesh.config import ClientSettings
from toolmesh.errors import ToolmeshError
from toolmesh.types import ClientEvent, ConnectionStatus


@pytest.fixture
def client(logger) -> FakeMCPClient:
    return FakeMCPClient(server_config(), logger=logger)


class TestRequestIds:
    """Request id allocation."""

    @pytest.mark.asyncio
    async def test_ids_strictly_increase(self, client: FakeMCPClient) -> None:
        """Ids start at 1 and never repeat, notifications included."""
        await client.connect()
        await client.initialize()
        await client.list_tools()
        await client.call_tool("echo", {"text": "hi"})

        ids = [request_id for request_id, _, _ in client.sent]
        assert ids == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_ids_are_per_client(self, logger) -> None:
        first = FakeMCPClient(server_config("a"), logger=logger)
        second = FakeMCPClient(server_config("b"), logger=logger)

        await first.send_request("tools/list")
        await first.send_request("tools/list")
        await second.send_request("tools/list")

        assert [s[0] for s in first.sent] == [1, 2]
        assert [s[0] for s in second.sent] == [1]


class TestHandshake:
    """initialize / list_tools / call_tool."""

    @pytest.mark.asyncio
    async def test_initialize_sends_handshake_then_notification(self, logger) -> None:
        settings = ClientSettings(client_name="tester", client_version="9.9")
        client = FakeMCPClient(server_config(), settings=settings, logger=logger)

        result = await client.initialize()

        (_, method, params), (_, notify_method, _) = client.sent
        assert method == "initialize"
        assert params == {
            "protocolVersion": "2024-11-05",
            "capabilities": {"roots": {"listChanged": False}, "sampling": {}},
            "clientInfo": {"name": "tester", "version": "9.9"},
        }
        assert notify_method == "notifications/initialized"
        assert result["serverInfo"]["name"] == "mock-mcp"

    @pytest.mark.asyncio
    async def test_initialize_error_raises(self, client: FakeMCPClient) -> None:
        client.errors["initialize"] = (-32600, "unsupported version")

        with pytest.raises(ToolmeshError) as exc_info:
            await client.initialize()

        assert exc_info.value.code == "PROTOCOL_ERROR"
        assert str(exc_info.value) == "MCP initialization failed: unsupported version"
        assert exc_info.value.rpc_code == -32600
        # No initialized notification after a failed handshake
        assert [method for _, method, _ in client.sent] == ["initialize"]

    @pytest.mark.asyncio
    async def test_list_tools_updates_tools_and_emits(self, client: FakeMCPClient) -> None:
        seen = []
        client.on(ClientEvent.TOOLS_UPDATED, seen.append)

        tools = await client.list_tools()

        assert [tool.name for tool in tools] == ["echo"]
        assert client.tools == tools
        assert seen == [tools]

    @pytest.mark.asyncio
    async def test_list_tools_skips_nameless_descriptors(self, logger, log_output) -> None:
        client = FakeMCPClient(
            server_config(),
            logger=logger,
            tools=[{"description": "no name"}, {"name": ""}, "junk", echo_tool()],
        )

        tools = await client.list_tools()

        assert [tool.name for tool in tools] == ["echo"]
        assert "Skipping tool descriptor without a name" in log_output.getvalue()

    @pytest.mark.asyncio
    async def test_list_tools_error_raises(self, client: FakeMCPClient) -> None:
        client.errors["tools/list"] = (-32603, "boom")

        with pytest.raises(ToolmeshError) as exc_info:
            await client.list_tools()

        assert exc_info.value.code == "PROTOCOL_ERROR"
        assert str(exc_info.value) == "Failed to list tools: boom"

    @pytest.mark.asyncio
    async def test_call_tool_error_is_data(self, client: FakeMCPClient) -> None:
        """A JSON-RPC error from tools/call never raises."""
        client.errors["tools/call"] = (-32000, "tool crashed")

        result = await client.call_tool("echo", {"text": "hi"})

        assert result.is_error
        assert result.content == [{"type": "text", "text": "Error: tool crashed"}]

    @pytest.mark.asyncio
    async def test_call_tool_success(self, client: FakeMCPClient) -> None:
        result = await client.call_tool("echo", {"text": "hi"})

        assert not result.is_error
        assert result.text == '{"text": "hi"}'
        _, method, params = client.sent[-1]
        assert method == "tools/call"
        assert params == {"name": "echo", "arguments": {"text": "hi"}}


class TestEvents:
    """Client-level event emitter."""

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(
        self, client: FakeMCPClient, log_output
    ) -> None:
        calls = []

        def broken() -> None:
            raise RuntimeError("handler bug")

        client.on(ClientEvent.CONNECTED, broken)
        client.on(ClientEvent.CONNECTED, lambda: calls.append("second"))

        await client.connect()

        assert calls == ["second"]
        assert client.status == ConnectionStatus.CONNECTED
        assert "handler bug" in log_output.getvalue()

    @pytest.mark.asyncio
    async def test_duplicate_registration_is_noop(self, client: FakeMCPClient) -> None:
        calls = []

        def handler() -> None:
            calls.append(1)

        client.on("connected", handler)
        client.on(ClientEvent.CONNECTED, handler)
        await client.connect()

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_off_removes_handler(self, client: FakeMCPClient) -> None:
        calls = []

        def handler() -> None:
            calls.append(1)

        client.on(ClientEvent.DISCONNECTED, handler)
        client.off(ClientEvent.DISCONNECTED, handler)
        client.off(ClientEvent.DISCONNECTED, handler)  # unknown handler is ignored
        await client.disconnect()

        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["tools-updated", "tools_updated", "TOOLS_UPDATED"])
    async def test_tools_updated_name_spellings(self, client: FakeMCPClient, name: str) -> None:
        seen = []
        client.on(name, seen.append)

        await client.list_tools()

        assert len(seen) == 1
        assert ClientEvent(name) is ClientEvent.TOOLS_UPDATED

    def test_unknown_event_rejected(self, client: FakeMCPClient) -> None:
        with pytest.raises(ValueError):
            client.on("reconnected", lambda: None)


class TestAbort:
    """Abort signalling."""

    @pytest.mark.asyncio
    async def test_abort_interrupts_pending_connect(self, logger) -> None:
        hold = asyncio.Event()
        client = FakeMCPClient(server_config(), logger=logger, hold_connect=hold)

        task = asyncio.create_task(client.connect())
        await client.connect_started.wait()
        client.abort()

        with pytest.raises(ToolmeshError) as exc_info:
            await task

        assert exc_info.value.is_abort
        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_operations_after_abort_fail_fast(self, client: FakeMCPClient) -> None:
        client.abort()

        with pytest.raises(ToolmeshError) as exc_info:
            await client.send_request("tools/list")

        assert exc_info.value.code == "CONNECTION_ABORTED"
        assert client.sent == []
