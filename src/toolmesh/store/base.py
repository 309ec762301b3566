"""Server store contract."""

from abc import ABC, abstractmethod
from typing import Any

from toolmesh.config.models import MCPServerConfig
from toolmesh.types import ToolSchema


class ServerStore(ABC):
    """Abstract base class for server configuration storage.

    Keyed by server identity. Every method returns detached copies; callers
    change stored state only through the mutating methods.
    """

    @abstractmethod
    async def get_all(self) -> list[MCPServerConfig]:
        """Get every stored server."""

    @abstractmethod
    async def get_by_id(self, server_id: str) -> MCPServerConfig | None:
        """Get a server by ID."""

    @abstractmethod
    async def get_by_ids(self, server_ids: list[str]) -> list[MCPServerConfig]:
        """Get the known servers among ``server_ids``, in the given order."""

    @abstractmethod
    async def create(self, server: MCPServerConfig) -> MCPServerConfig:
        """Store a new server."""

    @abstractmethod
    async def update(self, server_id: str, **changes: Any) -> MCPServerConfig | None:
        """Apply field changes. Returns None for an unknown ID."""

    @abstractmethod
    async def set_tools(self, server_id: str, tools: list[ToolSchema]) -> MCPServerConfig | None:
        """Replace the discovered tool list and clear the last error."""

    @abstractmethod
    async def set_active(self, server_id: str, active: bool) -> MCPServerConfig | None:
        """Set the active flag."""

    @abstractmethod
    async def set_error(self, server_id: str, error: str | None) -> MCPServerConfig | None:
        """Record (or clear) the last connection error."""

    @abstractmethod
    async def delete(self, server_id: str) -> bool:
        """Remove a server. Returns True if it existed."""
