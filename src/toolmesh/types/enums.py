"""Shared enumerations for toolmesh."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class TransportKind(str, Enum):
    """Wire transport used to reach a capability server."""

    DUAL_CHANNEL = "http-dual-channel"  # SSE push channel + POST request channel
    STREAMING = "streaming"  # Single POST endpoint, JSON or SSE response
    LOCAL_PROCESS = "local-process"  # stdio subprocess, needs an external proxy


class ConnectionStatus(str, Enum):
    """Client connection status."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"


class ClientEvent(str, Enum):
    """Events emitted by protocol clients."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    TOOLS_UPDATED = "tools-updated"

    @classmethod
    def _missing_(cls, value: object) -> "ClientEvent | None":
        # Accept the Python-style spelling too ("tools_updated")
        if isinstance(value, str) and "_" in value:
            return cls.__members__.get(value.upper()) or cls._value2member_map_.get(
                value.replace("_", "-")
            )
        return None


class BusEvent(str, Enum):
    """Router-level notifications published on the event bus."""

    SERVER_CONNECTED = "mcp:server-connected"
    SERVER_DISCONNECTED = "mcp:server-disconnected"
    SERVER_ERROR = "mcp:server-error"
