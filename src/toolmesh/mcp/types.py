"""MCP client and router types."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

from toolmesh.config.models import MCPServerConfig
from toolmesh.types import ToolSchema

from .protocol import RequestId


@dataclass
class ToolCallResult:
    """Outcome of a ``tools/call`` invocation.

    Protocol errors are folded into ``is_error`` so callers branch on one
    shape for every outcome.
    """

    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False
    structured_content: dict[str, Any] | None = None  # MCP structuredContent field

    @classmethod
    def from_dict(cls, result: Any) -> "ToolCallResult":
        """Build from the ``result`` member of a ``tools/call`` response."""
        if not isinstance(result, dict):
            if result is None:
                return cls()
            return cls(content=[{"type": "text", "text": json.dumps(result)}])

        content = result.get("content") or []
        blocks = [item if isinstance(item, dict) else {"type": "text", "text": str(item)}
                  for item in content]
        structured = result.get("structuredContent")
        return cls(
            content=blocks,
            is_error=bool(result.get("isError", False)),
            structured_content=structured if isinstance(structured, dict) else None,
        )

    @classmethod
    def error(cls, message: str) -> "ToolCallResult":
        """Single text block error result."""
        return cls(content=[{"type": "text", "text": message}], is_error=True)

    @property
    def text(self) -> str:
        """Concatenated text blocks."""
        return "\n".join(
            block.get("text", "")
            for block in self.content
            if block.get("type") == "text" and block.get("text")
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with wire field names."""
        data: dict[str, Any] = {"content": list(self.content), "isError": self.is_error}
        if self.structured_content is not None:
            data["structuredContent"] = self.structured_content
        return data


@dataclass
class PendingRequest:
    """An outstanding request waiting for its correlated response.

    The owner removes the entry on the first terminal event (response,
    timeout or disconnect), so a late arrival finds nothing to resolve.
    """

    id: RequestId
    method: str
    future: asyncio.Future[dict[str, Any]]
    timer: asyncio.TimerHandle | None = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


@dataclass(frozen=True)
class ServerTool:
    """A tool together with the server that exposes it."""

    server_id: str
    server_name: str
    tool: ToolSchema


@dataclass
class ConnectionSummary:
    """Connection state of one stored server."""

    server: MCPServerConfig
    connected: bool
    tool_count: int


@dataclass
class ParsedToolCall:
    """A tool call request extracted from model output."""

    tool: str
    arguments: dict[str, Any]
    raw: str


__all__ = [
    "ToolSchema",
    "ToolCallResult",
    "PendingRequest",
    "ServerTool",
    "ConnectionSummary",
    "ParsedToolCall",
]
