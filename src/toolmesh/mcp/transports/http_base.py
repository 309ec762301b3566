"""Common HTTP plumbing for network transports."""

import httpx

from toolmesh.config.models import ClientSettings, MCPServerConfig
from toolmesh.errors import create_error
from toolmesh.logging import MeshLogger

from ..client import BaseMCPClient


class HTTPMCPClient(BaseMCPClient):
    """Base for clients that talk to an HTTP endpoint.

    An injected ``httpx.AsyncClient`` is borrowed and never closed; otherwise
    one is created on first use and closed on disconnect.
    """

    def __init__(
        self,
        server: MCPServerConfig,
        settings: ClientSettings | None = None,
        logger: MeshLogger | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not server.endpoint:
            raise create_error(
                "CONFIG_INVALID",
                detail="HTTP MCP server requires an endpoint URL",
                server_id=server.id,
            )
        super().__init__(server, settings, logger)
        self._endpoint = server.endpoint.rstrip("/")
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            # Read timeout disabled: push channels stay open and request
            # deadlines are enforced by the client itself
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.connect_timeout, read=None),
            )
        return self._http

    async def _close_http(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    def _headers(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Request headers: base, then configured headers, then bearer auth.

        A configured ``Authorization`` header takes precedence over the token.
        """
        headers = dict(base or {})
        headers.update(self._server.headers)
        has_auth = any(key.lower() == "authorization" for key in self._server.headers)
        if self._server.auth_token and not has_auth:
            headers["Authorization"] = f"Bearer {self._server.auth_token}"
        return headers

    def _http_status_error(self, response: httpx.Response, method: str | None) -> Exception:
        error = create_error(
            "HTTP_ERROR",
            detail=f"HTTP request failed: {response.status_code} {response.reason_phrase}",
            server_id=self._server.id,
            method=method,
        )
        error.retryable = response.status_code >= 500
        return error
