"""Dual-channel HTTP transport: SSE push channel plus POSTed requests."""

import asyncio
from typing import Any

import httpx

from toolmesh.errors import ToolmeshError, create_error, wrap_error
from toolmesh.types import ClientEvent, ConnectionStatus, LogLevel, TransportKind

from ..protocol import JSONRPCMessage, RequestId
from ..types import PendingRequest
from .http_base import HTTPMCPClient


class DualChannelMCPClient(HTTPMCPClient):
    """Client for servers exposing ``{endpoint}/sse`` and ``{endpoint}/message``.

    Requests are POSTed; responses arrive either in the POST reply or later
    on the push channel and are matched to the waiting request by id.
    """

    transport = TransportKind.DUAL_CHANNEL

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._pending: dict[RequestId, PendingRequest] = {}
        self._push_task: asyncio.Task[None] | None = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def push_channel_url(self) -> str:
        """Push channel URL. The token travels as a query parameter since the
        channel carries no custom headers."""
        url = httpx.URL(f"{self._endpoint}/sse")
        if self._server.auth_token:
            url = url.copy_set_param("token", self._server.auth_token)
        return str(url)

    # Connection

    async def _connect(self) -> None:
        if self._status == ConnectionStatus.CONNECTED:
            return
        self._status = ConnectionStatus.CONNECTING

        try:
            await self._probe()
            await self._open_push_channel()
        except BaseException:
            await self._stop_push_channel()
            self._status = ConnectionStatus.DISCONNECTED
            raise

        self._log(LogLevel.INFO, "Connected via dual-channel transport")
        self._set_connected()

    async def _probe(self) -> None:
        """Check that the push endpoint answers before opening the channel."""
        try:
            async with self._http_client().stream(
                "GET",
                f"{self._endpoint}/sse",
                headers=self._headers({"Accept": "text/event-stream"}),
            ) as response:
                if not response.is_success:
                    raise create_error(
                        "CONNECTION_FAILED",
                        detail=(
                            f"Failed to connect: {response.status_code} {response.reason_phrase}"
                        ),
                        server_id=self._server.id,
                    )
        except httpx.HTTPError as e:
            raise create_error(
                "CONNECTION_FAILED",
                detail=f"Failed to connect: {e}",
                server_id=self._server.id,
            ) from e

    async def _open_push_channel(self) -> None:
        opened: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._push_task = asyncio.create_task(self._run_push_channel(opened))
        try:
            await asyncio.wait_for(opened, timeout=self._settings.connect_timeout)
        except TimeoutError:
            raise create_error(
                "CONNECTION_TIMEOUT",
                timeout_seconds=self._settings.connect_timeout,
                server_id=self._server.id,
            ) from None

    async def _run_push_channel(self, opened: asyncio.Future[None]) -> None:
        try:
            async with self._http_client().stream(
                "GET",
                self.push_channel_url,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            ) as response:
                if not response.is_success:
                    raise create_error(
                        "CONNECTION_FAILED",
                        detail=(
                            "Failed to establish SSE connection: "
                            f"{response.status_code} {response.reason_phrase}"
                        ),
                        server_id=self._server.id,
                    )
                self._log(LogLevel.DEBUG, "Push channel open")
                if not opened.done():
                    opened.set_result(None)
                await self._consume_push_channel(response)

            raise create_error(
                "CONNECTION_FAILED",
                detail="SSE connection closed by server",
                server_id=self._server.id,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not opened.done():
                failure = e
                if not isinstance(failure, ToolmeshError):
                    failure = create_error(
                        "CONNECTION_FAILED",
                        detail="Failed to establish SSE connection",
                        server_id=self._server.id,
                    )
                opened.set_exception(failure)
                return
            # Channel errors after establishment are reported, not fatal
            error = wrap_error(e, server_id=self._server.id)
            self._log(LogLevel.ERROR, f"SSE error: {error}")
            self._emit(ClientEvent.ERROR, error)

    async def _consume_push_channel(self, response: httpx.Response) -> None:
        """Read server-sent events, dispatching each ``message`` event."""
        event_type = "message"
        data_lines: list[str] = []

        async for line in response.aiter_lines():
            line = line.rstrip("\r")
            if not line:
                if data_lines:
                    self._handle_push_event(event_type, "\n".join(data_lines))
                event_type = "message"
                data_lines = []
                continue
            if line.startswith(":"):
                continue

            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if field == "data":
                data_lines.append(value)
            elif field == "event":
                event_type = value

        if data_lines:
            self._handle_push_event(event_type, "\n".join(data_lines))

    def _handle_push_event(self, event_type: str, data: str) -> None:
        if event_type != "message":
            self._log(LogLevel.DEBUG, f"Ignoring '{event_type}' event on push channel")
            return
        try:
            message = JSONRPCMessage.parse(data)
        except ValueError:
            self._log(LogLevel.WARN, "Malformed message on push channel", {"data": data})
            return

        if JSONRPCMessage.is_response(message):
            self._handle_response(message)
        else:
            self._log(LogLevel.DEBUG, "Ignoring non-response message on push channel")

    async def _stop_push_channel(self) -> None:
        task, self._push_task = self._push_task, None
        if task is not None and not task.done():
            task.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _disconnect(self) -> None:
        if self._push_task is not None:
            self._push_task.cancel()
        self._reject_pending()
        await self._stop_push_channel()
        await self._close_http()
        self._log(LogLevel.INFO, "Disconnected")
        self._set_disconnected()

    def _reject_pending(self) -> None:
        pending, self._pending = self._pending, {}
        for request in pending.values():
            request.cancel_timer()
            if not request.future.done():
                request.future.set_exception(
                    create_error(
                        "CLIENT_DISCONNECTED",
                        server_id=self._server.id,
                        method=request.method,
                    )
                )

    # Requests

    async def _send_request(
        self, method: str, params: dict[str, Any] | None
    ) -> dict[str, Any]:
        request_id = self._next_request_id()

        if JSONRPCMessage.is_notification_method(method):
            await self._post(JSONRPCMessage.notification(method, params), method)
            return self._notification_ack(request_id)

        loop = asyncio.get_running_loop()
        pending = PendingRequest(id=request_id, method=method, future=loop.create_future())
        pending.timer = loop.call_later(
            self._settings.request_timeout, self._expire_request, request_id
        )
        self._pending[request_id] = pending

        try:
            await self._post(JSONRPCMessage.request(method, params, id=request_id), method)
            return await pending.future
        finally:
            # No-op unless the caller was cancelled or the POST failed
            leftover = self._pending.pop(request_id, None)
            if leftover is not None:
                leftover.cancel_timer()

    async def _post(self, message: dict[str, Any], method: str) -> None:
        try:
            response = await self._http_client().post(
                f"{self._endpoint}/message",
                json=message,
                headers=self._headers({"Content-Type": "application/json"}),
            )
        except httpx.HTTPError as e:
            raise wrap_error(e, server_id=self._server.id, method=method) from e

        if not response.is_success:
            raise self._http_status_error(response, method)

        # Some servers answer inline instead of on the push channel
        if "application/json" in response.headers.get("content-type", ""):
            try:
                data = response.json()
            except ValueError:
                self._log(LogLevel.WARN, f"Malformed JSON reply to {method}")
                return
            if JSONRPCMessage.is_response(data):
                self._handle_response(data)

    def _handle_response(self, message: dict[str, Any]) -> None:
        request_id = message["id"]
        pending = (
            self._pending.pop(request_id, None) if isinstance(request_id, (int, str)) else None
        )
        if pending is None:
            self._log(LogLevel.DEBUG, f"Ignoring response for unknown request id {request_id!r}")
            return
        pending.cancel_timer()
        if not pending.future.done():
            pending.future.set_result(message)

    def _expire_request(self, request_id: RequestId) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.future.done():
            return
        self._log(LogLevel.WARN, f"Request timeout for method: {pending.method}")
        pending.future.set_exception(
            create_error(
                "REQUEST_TIMEOUT",
                method=pending.method,
                timeout_seconds=self._settings.request_timeout,
                server_id=self._server.id,
            )
        )
