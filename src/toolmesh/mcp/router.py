"""MCP Router - owns live client connections and routes tool calls."""

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable
from typing import Any

from toolmesh.config.models import ClientSettings, MCPServerConfig, RouterSettings
from toolmesh.errors import ToolmeshError, create_error, wrap_error
from toolmesh.events import EventBus
from toolmesh.logging import MeshLogger, get_logger
from toolmesh.store import ServerStore
from toolmesh.types import BusEvent, ClientEvent, LogLevel, ToolSchema

from .client import BaseMCPClient
from .factory import create_client, probe_client
from .proxy import proxy_endpoint, should_auto_proxy
from .types import ConnectionSummary, ServerTool, ToolCallResult

ClientFactory = Callable[[MCPServerConfig], BaseMCPClient]


class MCPRouter:
    """Maintains at most one live client per server id.

    Connection attempts are registered before they start so they can be
    aborted. Durable state (tools, active flag, last error) is written to
    the store; lifecycle changes are published on the event bus.
    """

    def __init__(
        self,
        store: ServerStore,
        bus: EventBus,
        settings: RouterSettings | None = None,
        client_settings: ClientSettings | None = None,
        logger: MeshLogger | None = None,
        client_factory: ClientFactory | None = None,
    ):
        """Initialize router.

        Args:
            store: Server configuration store
            bus: Event bus for lifecycle notifications
            settings: Router settings (origin, proxy prefix)
            client_settings: Settings passed to every client
            logger: Optional logger
            client_factory: Builds a client for a resolved server config
                (defaults to ``create_client``)
        """
        self._store = store
        self._bus = bus
        self._settings = settings or RouterSettings()
        self._client_settings = client_settings or ClientSettings()
        self._logger = logger or get_logger()
        self._client_factory = client_factory or self._default_client_factory
        self._clients: dict[str, BaseMCPClient] = {}
        # Registered clients still running the handshake
        self._pending: set[BaseMCPClient] = set()
        self._initialized = False

    def _log(self, level: LogLevel, message: str, context: dict[str, Any] | None = None) -> None:
        self._logger._log(level, "router", message, context)

    def _default_client_factory(self, server: MCPServerConfig) -> BaseMCPClient:
        return create_client(server, self._client_settings, self._logger)

    async def initialize(self) -> None:
        """Load stored configurations once. Does not connect anything."""
        if self._initialized:
            return
        servers = await self._store.get_all()
        self._initialized = True
        self._log(LogLevel.INFO, f"Router initialized with {len(servers)} configured servers")

    # Connection lifecycle

    async def connect(self, server_id: str) -> MCPServerConfig:
        """Connect a stored server, run the handshake and discover its tools.

        Returns:
            The updated server record

        Raises:
            ToolmeshError: SERVER_NOT_FOUND, CONNECTION_ABORTED if the attempt
                was aborted, or the transport/protocol failure
        """
        server = await self._store.get_by_id(server_id)
        if server is None:
            raise create_error("SERVER_NOT_FOUND", server_id=server_id)

        if (
            self._settings.auto_proxy
            and not server.use_dev_proxy
            and should_auto_proxy(self._settings.origin, server.endpoint)
        ):
            self._log(LogLevel.INFO, f"Routing '{server.name}' through the development proxy")
            server.use_dev_proxy = True
            await self._store.update(server_id, use_dev_proxy=True)

        existing = self._clients.get(server_id)
        if existing is not None:
            if self._is_live(existing):
                return server
            # Superseded attempt
            self.abort_connection(server_id)

        client = self._client_factory(self._resolve_endpoint(server))
        self._clients[server_id] = client
        self._pending.add(client)

        def on_disconnected() -> None:
            self._on_client_disconnected(server_id, client)

        def on_error(error: Exception) -> None:
            self._on_client_error(server_id, error)

        client.on(ClientEvent.DISCONNECTED, on_disconnected)
        client.on(ClientEvent.ERROR, on_error)

        server_log = self._logger.server(server_id, server.name)
        server_log.connecting(str(client.transport.value), client.server.endpoint)

        def release() -> Awaitable[None]:
            self._deregister(server_id, client)
            client.off(ClientEvent.DISCONNECTED, on_disconnected)
            client.off(ClientEvent.ERROR, on_error)
            return self._discard(client)

        try:
            await client.connect()
            await client.initialize()
            tools = await client.list_tools()

            updated = await self._store.set_tools(server_id, tools)
            if updated is None:
                raise create_error("STORE_UPDATE_FAILED", server_id=server_id)
            updated = await self._store.set_active(server_id, True) or updated
        except asyncio.CancelledError:
            await asyncio.shield(release())
            raise
        except Exception as e:
            await release()

            if isinstance(e, ToolmeshError) and e.is_abort:
                server_log.aborted()
                raise

            error = wrap_error(e, server_id=server_id)
            server_log.failed(error)
            await self._store.set_error(server_id, error.message)
            self._bus.emit(
                BusEvent.SERVER_ERROR, {"server_id": server_id, "error": error.message}
            )
            raise
        finally:
            self._pending.discard(client)

        server_log.connected(len(tools))
        self._bus.emit(BusEvent.SERVER_CONNECTED, updated)
        return updated

    def abort_connection(self, server_id: str) -> bool:
        """Abort an in-flight connection attempt.

        Returns:
            True if an attempt was aborted
        """
        client = self._clients.get(server_id)
        if client is None or self._is_live(client):
            return False

        client.abort()
        del self._clients[server_id]
        self._log(LogLevel.INFO, f"Aborted connection attempt for '{server_id}'")
        return True

    async def disconnect(self, server_id: str) -> None:
        """Disconnect a server and mark it inactive."""
        client = self._clients.get(server_id)
        try:
            if client is not None:
                await client.disconnect()
        finally:
            if client is not None:
                self._deregister(server_id, client)
            await self._store.set_active(server_id, False)

        if client is not None:
            self._logger.server(server_id, client.server.name).disconnected()

    async def disconnect_all(self) -> None:
        """Disconnect every registered server, best effort."""
        server_ids = list(self._clients)
        if not server_ids:
            return

        self._log(LogLevel.INFO, f"Disconnecting {len(server_ids)} servers")
        results = await asyncio.gather(
            *(self.disconnect(server_id) for server_id in server_ids),
            return_exceptions=True,
        )
        for server_id, result in zip(server_ids, results, strict=True):
            if isinstance(result, Exception):
                self._log(LogLevel.WARN, f"Error disconnecting '{server_id}': {result}")

    def _is_live(self, client: BaseMCPClient) -> bool:
        """Connected and past the handshake."""
        return client.is_connected and client not in self._pending

    def _deregister(self, server_id: str, client: BaseMCPClient) -> None:
        if self._clients.get(server_id) is client:
            del self._clients[server_id]

    async def _discard(self, client: BaseMCPClient) -> None:
        """Release a client whose connection attempt failed."""
        try:
            await client.disconnect()
        except Exception as e:
            self._log(LogLevel.DEBUG, f"Cleanup of '{client.server.id}' raised: {e}")

    def _on_client_disconnected(self, server_id: str, client: BaseMCPClient) -> None:
        self._deregister(server_id, client)
        self._bus.emit(BusEvent.SERVER_DISCONNECTED, {"server_id": server_id})

    def _on_client_error(self, server_id: str, error: Exception) -> None:
        self._log(LogLevel.ERROR, f"MCP server '{server_id}' error: {error}")
        self._bus.emit(BusEvent.SERVER_ERROR, {"server_id": server_id, "error": str(error)})

    def _resolve_endpoint(self, server: MCPServerConfig) -> MCPServerConfig:
        """Config the client is built with; the stored endpoint is unchanged."""
        if not server.use_dev_proxy or not self._settings.origin or not server.endpoint:
            return server
        endpoint = proxy_endpoint(
            self._settings.origin, server.endpoint, self._settings.proxy_prefix
        )
        if endpoint != server.endpoint:
            self._log(LogLevel.DEBUG, f"Proxying {server.endpoint} via {endpoint}")
        return dataclasses.replace(server, endpoint=endpoint)

    # Tool routing

    async def call_tool(
        self,
        server_id: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> ToolCallResult:
        """Invoke a tool on a connected server.

        Raises:
            ToolmeshError: SERVER_NOT_CONNECTED if the server has no live client
        """
        client = self._clients.get(server_id)
        if client is None or not self._is_live(client):
            raise create_error("SERVER_NOT_CONNECTED", server_id=server_id, tool_name=tool_name)
        return await client.call_tool(tool_name, arguments or {})

    def get_all_tools(self) -> list[ServerTool]:
        """Live tools of every connected server, in registry order."""
        tools = []
        for server_id, client in self._clients.items():
            if not self._is_live(client):
                continue
            tools.extend(
                ServerTool(server_id=server_id, server_name=client.server.name, tool=tool)
                for tool in client.tools
            )
        return tools

    async def get_tools_for_servers(self, server_ids: list[str]) -> list[ServerTool]:
        """Tools of the given servers.

        Connected servers report their live list; others fall back to the
        last persisted one. Unknown ids are skipped.
        """
        tools = []
        for server in await self._store.get_by_ids(server_ids):
            client = self._clients.get(server.id)
            source = client.tools if client is not None and self._is_live(client) else server.tools
            tools.extend(
                ServerTool(server_id=server.id, server_name=server.name, tool=tool)
                for tool in source
            )
        return tools

    def find_tool_server(
        self, tool_name: str, allowed_server_ids: list[str] | None = None
    ) -> ServerTool | None:
        """First connected server (registry order) exposing ``tool_name``."""
        allowed = set(allowed_server_ids) if allowed_server_ids is not None else None
        for server_tool in self.get_all_tools():
            if allowed is not None and server_tool.server_id not in allowed:
                continue
            if server_tool.tool.name == tool_name:
                return server_tool
        return None

    async def refresh_tools(self, server_id: str) -> list[ToolSchema]:
        """Rediscover a connected server's tools and persist them."""
        client = self._clients.get(server_id)
        if client is None or not self._is_live(client):
            raise create_error("SERVER_NOT_CONNECTED", server_id=server_id)

        tools = await client.list_tools()
        await self._store.set_tools(server_id, tools)
        self._log(LogLevel.INFO, f"Refreshed {len(tools)} tools from '{server_id}'")
        return tools

    # Introspection

    def get_client(self, server_id: str) -> BaseMCPClient | None:
        return self._clients.get(server_id)

    def is_connected(self, server_id: str) -> bool:
        client = self._clients.get(server_id)
        return client is not None and self._is_live(client)

    def get_connected_server_ids(self) -> list[str]:
        return [server_id for server_id, client in self._clients.items() if self._is_live(client)]

    async def test_connection(self, server: MCPServerConfig) -> list[ToolSchema]:
        """Probe a server definition without registering it."""
        return await probe_client(self._client_factory(self._resolve_endpoint(server)))

    async def get_connection_status(self) -> list[ConnectionSummary]:
        """Connection state of every stored server."""
        summaries = []
        for server in await self._store.get_all():
            client = self._clients.get(server.id)
            connected = client is not None and self._is_live(client)
            tool_count = len(client.tools) if connected and client else len(server.tools)
            summaries.append(
                ConnectionSummary(server=server, connected=connected, tool_count=tool_count)
            )
        return summaries
