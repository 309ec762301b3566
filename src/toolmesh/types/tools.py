"""Tool descriptors shared by configuration, storage and protocol clients."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolSchema:
    """A tool exposed by a capability server.

    Immutable once received; a re-discovery replaces the whole list.
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolSchema":
        """Normalize a ``tools/list`` descriptor (or a stored record)."""
        schema = data.get("inputSchema", data.get("input_schema"))
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            input_schema=dict(schema) if isinstance(schema, dict) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with wire field names."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
