"""Local-process transport placeholder."""

from typing import Any

from toolmesh.config.models import ClientSettings, MCPServerConfig
from toolmesh.errors import create_error
from toolmesh.logging import MeshLogger
from toolmesh.types import LogLevel, TransportKind

from ..client import BaseMCPClient


class LocalProcessMCPClient(BaseMCPClient):
    """Client for servers launched as a local child process.

    Spawning processes is not available in this runtime, so ``connect``
    always fails with TRANSPORT_UNSUPPORTED. The launch configuration is kept
    so a proxy can start the server on the caller's behalf.
    """

    transport = TransportKind.LOCAL_PROCESS

    def __init__(
        self,
        server: MCPServerConfig,
        settings: ClientSettings | None = None,
        logger: MeshLogger | None = None,
    ):
        if not server.command:
            raise create_error(
                "CONFIG_INVALID",
                detail="Stdio MCP server requires a command",
                server_id=server.id,
            )
        super().__init__(server, settings, logger)

    def get_command_config(self) -> dict[str, Any]:
        """Launch configuration: command, args and environment."""
        return {
            "command": self._server.command,
            "args": list(self._server.args),
            "env": dict(self._server.env),
        }

    async def _connect(self) -> None:
        self._log(LogLevel.WARN, f"Cannot spawn '{self._server.command}' in this runtime")
        raise create_error(
            "TRANSPORT_UNSUPPORTED",
            command=self._server.command,
            server_id=self._server.id,
        )

    async def _disconnect(self) -> None:
        self._set_disconnected()

    async def _send_request(
        self, method: str, params: dict[str, Any] | None
    ) -> dict[str, Any]:
        raise create_error(
            "CLIENT_NOT_CONNECTED",
            transport="Stdio",
            server_id=self._server.id,
            method=method,
        )
