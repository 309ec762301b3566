"""Toolmesh configuration data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from toolmesh import __version__
from toolmesh.types import LogFormat, LogLevel, ToolSchema, TransportKind

PROTOCOL_VERSION = "2024-11-05"


@dataclass
class ClientSettings:
    """Protocol client settings shared by every transport."""

    protocol_version: str = PROTOCOL_VERSION
    client_name: str = "toolmesh"
    client_version: str = __version__
    connect_timeout: float = 10.0  # Push channel must open within this window
    request_timeout: float = 30.0  # Dual-channel per-request deadline
    streaming_timeout: float = 60.0  # Streaming transport per-request deadline

    def client_info(self) -> dict[str, str]:
        """Client identity sent in the ``initialize`` request."""
        return {"name": self.client_name, "version": self.client_version}


@dataclass
class RouterSettings:
    """Connection router settings."""

    # Origin the host application is served from, e.g. "http://localhost:3000".
    # Without an origin no endpoint is ever rewritten through the local proxy.
    origin: str | None = None
    proxy_prefix: str = "/mcp-proxy"
    auto_proxy: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_params: bool = True
    truncate_at: int = 200
    components: dict[str, bool] = field(default_factory=dict)


@dataclass
class MCPServerConfig:
    """A capability server the router can connect to.

    Persisted by the server store; the router reads and updates it but
    never owns its storage.
    """

    id: str
    name: str
    transport: TransportKind | str = TransportKind.STREAMING

    # http-dual-channel / streaming
    endpoint: str | None = None
    auth_token: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    use_dev_proxy: bool = False

    # local-process
    command: str | None = None
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    # State maintained by the router
    tools: list[ToolSchema] = field(default_factory=list)
    last_error: str | None = None
    is_active: bool = False

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MCPServerConfig":
        """Build from a config-file or API dict (snake_case or camelCase keys)."""
        transport = data.get("transport", TransportKind.STREAMING.value)
        try:
            transport = TransportKind(transport)
        except ValueError:
            # Kept verbatim so the client factory can report it
            pass

        return cls(
            id=str(data["id"]),
            name=data.get("name") or str(data["id"]),
            transport=transport,
            endpoint=data.get("endpoint"),
            auth_token=data.get("auth_token", data.get("authToken")),
            headers=dict(data.get("headers") or {}),
            use_dev_proxy=bool(data.get("use_dev_proxy", data.get("useDevProxy", False))),
            command=data.get("command"),
            args=[str(arg) for arg in data.get("args") or []],
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
            tools=[ToolSchema.from_dict(tool) for tool in data.get("tools") or []],
            last_error=data.get("last_error", data.get("lastError")),
            is_active=bool(data.get("is_active", data.get("isActive", False))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for event payloads and export."""
        transport = self.transport
        return {
            "id": self.id,
            "name": self.name,
            "transport": transport.value if isinstance(transport, TransportKind) else transport,
            "endpoint": self.endpoint,
            "auth_token": self.auth_token,
            "headers": dict(self.headers),
            "use_dev_proxy": self.use_dev_proxy,
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env),
            "tools": [tool.to_dict() for tool in self.tools],
            "last_error": self.last_error,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class MeshConfig:
    """Complete toolmesh configuration."""

    client: ClientSettings = field(default_factory=ClientSettings)
    router: RouterSettings = field(default_factory=RouterSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    servers: list[MCPServerConfig] = field(default_factory=list)
