"""In-memory server store."""

import copy
from collections import OrderedDict
from dataclasses import fields
from datetime import UTC, datetime
from typing import Any

from toolmesh.config.models import MCPServerConfig
from toolmesh.errors import create_error
from toolmesh.types import ToolSchema

from .base import ServerStore

_IMMUTABLE_FIELDS = {"id", "created_at"}


class InMemoryServerStore(ServerStore):
    """Dict-backed store preserving insertion order."""

    def __init__(self, servers: list[MCPServerConfig] | None = None):
        self._servers: OrderedDict[str, MCPServerConfig] = OrderedDict()
        self._field_names = {f.name for f in fields(MCPServerConfig)}
        for server in servers or []:
            self._insert(server)

    def _insert(self, server: MCPServerConfig) -> MCPServerConfig:
        record = copy.deepcopy(server)
        now = datetime.now(UTC)
        record.created_at = record.created_at or now
        record.updated_at = now
        self._servers[record.id] = record
        return record

    async def get_all(self) -> list[MCPServerConfig]:
        return [copy.deepcopy(server) for server in self._servers.values()]

    async def get_by_id(self, server_id: str) -> MCPServerConfig | None:
        server = self._servers.get(server_id)
        return copy.deepcopy(server) if server else None

    async def get_by_ids(self, server_ids: list[str]) -> list[MCPServerConfig]:
        return [
            copy.deepcopy(self._servers[server_id])
            for server_id in server_ids
            if server_id in self._servers
        ]

    async def create(self, server: MCPServerConfig) -> MCPServerConfig:
        if server.id in self._servers:
            raise create_error("CONFIG_INVALID", detail=f"Server already exists: {server.id}")
        return copy.deepcopy(self._insert(server))

    async def update(self, server_id: str, **changes: Any) -> MCPServerConfig | None:
        server = self._servers.get(server_id)
        if server is None:
            return None

        for name, value in changes.items():
            if name not in self._field_names or name in _IMMUTABLE_FIELDS:
                raise create_error("CONFIG_INVALID", detail=f"Cannot update field: {name}")
            setattr(server, name, copy.deepcopy(value))
        server.updated_at = datetime.now(UTC)
        return copy.deepcopy(server)

    async def set_tools(self, server_id: str, tools: list[ToolSchema]) -> MCPServerConfig | None:
        return await self.update(server_id, tools=list(tools), last_error=None)

    async def set_active(self, server_id: str, active: bool) -> MCPServerConfig | None:
        return await self.update(server_id, is_active=active)

    async def set_error(self, server_id: str, error: str | None) -> MCPServerConfig | None:
        return await self.update(server_id, last_error=error)

    async def delete(self, server_id: str) -> bool:
        return self._servers.pop(server_id, None) is not None
