"""Transport-independent MCP client base."""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from toolmesh.config.models import ClientSettings, MCPServerConfig
from toolmesh.errors import create_error
from toolmesh.logging import MeshLogger, get_logger
from toolmesh.types import ClientEvent, ConnectionStatus, LogLevel, ToolSchema, TransportKind

from .protocol import JSONRPCMessage, RequestId
from .types import ToolCallResult

T = TypeVar("T")

EventHandler = Callable[..., None]


class BaseMCPClient(ABC):
    """Speaks the MCP handshake, discovery and invocation over one transport.

    Subclasses provide ``_connect``, ``_disconnect`` and ``_send_request``.
    The public wrappers make every network operation abortable until the
    client is connected.
    """

    transport: TransportKind

    def __init__(
        self,
        server: MCPServerConfig,
        settings: ClientSettings | None = None,
        logger: MeshLogger | None = None,
    ):
        """Initialize client.

        Args:
            server: Server definition (endpoint already resolved)
            settings: Protocol settings and timeouts
            logger: Optional MeshLogger instance
        """
        self._server = server
        self._settings = settings or ClientSettings()
        self._logger = logger or get_logger()
        self._server_logger = self._logger.server(server.id, server.name)

        self._status = ConnectionStatus.DISCONNECTED
        self._request_id = 0
        self._tools: list[ToolSchema] = []
        self._handlers: dict[ClientEvent, dict[EventHandler, None]] = {}
        self._abort_event = asyncio.Event()

    @property
    def server(self) -> MCPServerConfig:
        return self._server

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED

    @property
    def tools(self) -> list[ToolSchema]:
        """Tools from the most recent ``list_tools``."""
        return list(self._tools)

    @property
    def aborted(self) -> bool:
        return self._abort_event.is_set()

    def _log(self, level: LogLevel, message: str, context: dict[str, Any] | None = None) -> None:
        self._logger._log(level, f"mcp.{self._server.id}", message, context)

    # Events

    def on(self, event: ClientEvent | str, handler: EventHandler) -> None:
        """Register a handler. Registering the same handler twice is a no-op."""
        self._handlers.setdefault(ClientEvent(event), {})[handler] = None

    def off(self, event: ClientEvent | str, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(ClientEvent(event))
        if handlers is not None:
            handlers.pop(handler, None)

    def _emit(self, event: ClientEvent, *args: Any) -> None:
        for handler in list(self._handlers.get(event, {})):
            try:
                handler(*args)
            except Exception as e:
                self._log(
                    LogLevel.ERROR,
                    f"Error in '{event.value}' handler: {e}",
                    {"error_type": type(e).__name__},
                )

    # Lifecycle

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def connect(self) -> None:
        """Open the transport."""
        await self._abortable(self._connect())

    async def disconnect(self) -> None:
        """Close the transport. Outstanding requests fail with CLIENT_DISCONNECTED."""
        await self._disconnect()

    async def send_request(
        self, method: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send one request and return its response envelope.

        Notification methods resolve immediately with an empty result.
        """
        return await self._abortable(self._send_request(method, params))

    def abort(self) -> None:
        """Cancel an in-flight connection attempt.

        Pending and future network operations of this client raise
        CONNECTION_ABORTED.
        """
        if not self._abort_event.is_set():
            self._abort_event.set()
            self._log(LogLevel.DEBUG, "Abort requested")

    async def _abortable(self, operation: Awaitable[T]) -> T:
        if self._abort_event.is_set():
            if asyncio.iscoroutine(operation):
                operation.close()
            raise create_error("CONNECTION_ABORTED", server_id=self._server.id)

        task = asyncio.ensure_future(operation)
        abort_wait = asyncio.ensure_future(self._abort_event.wait())
        try:
            done, _ = await asyncio.wait({task, abort_wait}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            abort_wait.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise create_error("CONNECTION_ABORTED", server_id=self._server.id)

    @abstractmethod
    async def _connect(self) -> None:
        """Open the underlying transport."""

    @abstractmethod
    async def _disconnect(self) -> None:
        """Close the underlying transport and fail outstanding requests."""

    @abstractmethod
    async def _send_request(
        self, method: str, params: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Transport-specific request/response exchange."""

    def _notification_ack(self, request_id: RequestId) -> dict[str, Any]:
        return JSONRPCMessage.success_response(request_id, {})

    # Protocol

    async def initialize(self) -> dict[str, Any]:
        """Run the MCP handshake.

        Returns:
            Server's initialize result (capabilities, serverInfo)

        Raises:
            ToolmeshError: PROTOCOL_ERROR if the server rejects initialization
        """
        response = await self.send_request(
            "initialize",
            {
                "protocolVersion": self._settings.protocol_version,
                "capabilities": {
                    "roots": {"listChanged": False},
                    "sampling": {},
                },
                "clientInfo": self._settings.client_info(),
            },
        )

        if JSONRPCMessage.is_error(response):
            raise self._protocol_error("initialize", "MCP initialization failed", response)

        await self.send_request("notifications/initialized", {})

        result = JSONRPCMessage.get_result(response)
        server_info = result.get("serverInfo", {}) if isinstance(result, dict) else {}
        self._log(
            LogLevel.DEBUG,
            "Initialized",
            {"server_info": server_info} if server_info else None,
        )
        return result if isinstance(result, dict) else {}

    async def list_tools(self) -> list[ToolSchema]:
        """Discover the server's tools and remember them.

        Raises:
            ToolmeshError: PROTOCOL_ERROR if the server answers with an error
        """
        response = await self.send_request("tools/list", {})

        if JSONRPCMessage.is_error(response):
            raise self._protocol_error("tools/list", "Failed to list tools", response)

        result = JSONRPCMessage.get_result(response)
        raw_tools = result.get("tools", []) if isinstance(result, dict) else []
        tools = []
        for tool in raw_tools:
            if not isinstance(tool, dict) or not isinstance(tool.get("name"), str) or not tool["name"]:
                self._log(LogLevel.WARN, "Skipping tool descriptor without a name", {"tool": tool})
                continue
            tools.append(ToolSchema.from_dict(tool))

        self._tools = tools
        self._emit(ClientEvent.TOOLS_UPDATED, list(tools))
        return list(tools)

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> ToolCallResult:
        """Invoke a tool.

        A JSON-RPC error from the server becomes an ``is_error`` result rather
        than an exception; transport failures still raise.
        """
        self._server_logger.tool_calling(name, arguments)
        start = time.perf_counter()

        response = await self.send_request(
            "tools/call", {"name": name, "arguments": arguments or {}}
        )

        if JSONRPCMessage.is_error(response):
            result = ToolCallResult.error(f"Error: {JSONRPCMessage.error_message(response)}")
        else:
            result = ToolCallResult.from_dict(JSONRPCMessage.get_result(response))

        duration_ms = int((time.perf_counter() - start) * 1000)
        self._server_logger.tool_result(name, result.is_error, duration_ms)
        return result

    def _protocol_error(self, method: str, prefix: str, response: dict[str, Any]) -> Exception:
        error = JSONRPCMessage.get_error(response)
        rpc_code = error.get("code") if isinstance(error, dict) else None
        return create_error(
            "PROTOCOL_ERROR",
            detail=f"{prefix}: {JSONRPCMessage.error_message(response)}",
            server_id=self._server.id,
            method=method,
            rpc_code=rpc_code,
        )

    def _set_connected(self) -> None:
        self._status = ConnectionStatus.CONNECTED
        self._emit(ClientEvent.CONNECTED)

    def _set_disconnected(self) -> None:
        self._status = ConnectionStatus.DISCONNECTED
        self._emit(ClientEvent.DISCONNECTED)
