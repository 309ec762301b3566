"""Streaming HTTP transport: one POST per request, JSON or SSE reply."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx

from toolmesh.errors import create_error, wrap_error
from toolmesh.types import LogLevel, TransportKind

from ..protocol import JSONRPCMessage, RequestId
from .http_base import HTTPMCPClient

SESSION_HEADER = "Mcp-Session-Id"


class StreamFrameReader:
    """Incremental parser for an event-stream reply to one request.

    Chunks may split lines anywhere; the unterminated tail is buffered until
    the next chunk. Every ``data:`` line is decoded on its own and the last
    frame answering ``request_id`` wins.
    """

    def __init__(
        self,
        request_id: RequestId,
        on_skip: Callable[[str, str], None] | None = None,
    ):
        self.request_id = request_id
        self.buffer = ""
        self.last_match: dict[str, Any] | None = None
        self.frames = 0
        self._on_skip = on_skip

    def feed(self, chunk: str) -> None:
        self.buffer += chunk
        *lines, self.buffer = self.buffer.split("\n")
        for line in lines:
            self._process_line(line)

    def finish(self) -> dict[str, Any] | None:
        """Flush the buffered tail and return the winning frame, if any."""
        if self.buffer:
            tail, self.buffer = self.buffer, ""
            self._process_line(tail)
        return self.last_match

    def _process_line(self, line: str) -> None:
        line = line.rstrip("\r")
        if not line.startswith("data:"):
            return
        payload = line[len("data:") :].strip()
        if not payload:
            return

        self.frames += 1
        try:
            message = json.loads(payload)
        except ValueError:
            self._skip("malformed frame", payload)
            return

        if JSONRPCMessage.is_response(message) and message.get("id") == self.request_id:
            self.last_match = message
        else:
            self._skip("frame for another request", payload)

    def _skip(self, reason: str, payload: str) -> None:
        if self._on_skip is not None:
            self._on_skip(reason, payload)


class StreamingMCPClient(HTTPMCPClient):
    """Client for servers speaking MCP over a single streaming HTTP endpoint.

    The server-assigned session id is captured from any response and echoed
    on every later request until disconnect.
    """

    transport = TransportKind.STREAMING

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._session_id: str | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def _connect(self) -> None:
        # Nothing to open: each request carries its own exchange
        self._log(LogLevel.INFO, "Connected via streaming transport")
        self._set_connected()

    async def _disconnect(self) -> None:
        self._session_id = None
        await self._close_http()
        self._log(LogLevel.INFO, "Disconnected")
        self._set_disconnected()

    async def _send_request(
        self, method: str, params: dict[str, Any] | None
    ) -> dict[str, Any]:
        request_id = self._next_request_id()
        if JSONRPCMessage.is_notification_method(method):
            message = JSONRPCMessage.notification(method, params)
        else:
            message = JSONRPCMessage.request(method, params, id=request_id)

        try:
            return await asyncio.wait_for(
                self._exchange(message, request_id, method),
                timeout=self._settings.streaming_timeout,
            )
        except TimeoutError:
            self._log(LogLevel.WARN, f"Request timeout for method: {method}")
            raise create_error(
                "REQUEST_TIMEOUT",
                method=method,
                timeout_seconds=self._settings.streaming_timeout,
                server_id=self._server.id,
            ) from None

    def _request_headers(self) -> dict[str, str]:
        headers = self._headers(
            {
                "Content-Type": "application/json",
                "Accept": "application/json, text/event-stream",
            }
        )
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id
        return headers

    async def _exchange(
        self, message: dict[str, Any], request_id: RequestId, method: str
    ) -> dict[str, Any]:
        try:
            async with self._http_client().stream(
                "POST", self._endpoint, json=message, headers=self._request_headers()
            ) as response:
                session_id = response.headers.get(SESSION_HEADER)
                if session_id:
                    self._session_id = session_id

                if not response.is_success:
                    raise self._http_status_error(response, method)

                if "id" not in message:
                    return self._notification_ack(request_id)

                content_type = response.headers.get("content-type", "").lower()
                if "text/event-stream" in content_type:
                    return await self._read_event_stream(response, request_id)

                body = await response.aread()
        except httpx.HTTPError as e:
            raise wrap_error(e, server_id=self._server.id, method=method) from e

        text = body.decode(response.encoding or "utf-8", errors="replace")
        if "application/json" in content_type:
            try:
                return self._select_response(json.loads(text), request_id)
            except ValueError as e:
                raise create_error(
                    "PROTOCOL_ERROR",
                    detail=f"Invalid JSON response for {method}",
                    server_id=self._server.id,
                    method=method,
                ) from e

        # Unknown content type: JSON if it parses, otherwise wrap the text
        try:
            return self._select_response(json.loads(text), request_id)
        except ValueError:
            return JSONRPCMessage.success_response(
                request_id, {"content": [{"type": "text", "text": text}]}
            )

    def _select_response(self, data: Any, request_id: RequestId) -> dict[str, Any]:
        if isinstance(data, list):
            # Batch reply: pick the entry answering this request
            matches = [
                item
                for item in data
                if JSONRPCMessage.is_response(item) and item.get("id") == request_id
            ]
            if matches:
                return matches[-1]
            raise ValueError("no response for request in batch")
        if not isinstance(data, dict):
            raise ValueError("response is not a JSON object")
        return data

    async def _read_event_stream(
        self, response: httpx.Response, request_id: RequestId
    ) -> dict[str, Any]:
        reader = StreamFrameReader(request_id, on_skip=self._log_skipped_frame)
        async for chunk in response.aiter_text():
            reader.feed(chunk)
        final = reader.finish()

        if final is None:
            self._log(
                LogLevel.DEBUG,
                f"Stream ended without a response for request {request_id}",
                {"frames": reader.frames},
            )
            return JSONRPCMessage.success_response(request_id, {})
        return final

    def _log_skipped_frame(self, reason: str, payload: str) -> None:
        self._log(LogLevel.DEBUG, f"Skipping {reason}", {"frame": payload})

