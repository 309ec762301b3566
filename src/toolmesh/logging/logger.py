"""Toolmesh logger - component-scoped colored or JSON logging."""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from toolmesh.logging.colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from toolmesh.types import LogFormat, LogLevel

_LEVEL_RANK = {LogLevel.DEBUG: 0, LogLevel.INFO: 1, LogLevel.WARN: 2, LogLevel.ERROR: 3}

_LEVEL_COLORS = {
    LogLevel.DEBUG: LIGHT_BLUE,
    LogLevel.INFO: CYAN,
    LogLevel.WARN: YELLOW,
    LogLevel.ERROR: RED,
}

# Keyed by the root of the component name
_COMPONENT_COLORS = {
    "router": MAGENTA,
    "mcp": GREEN,
    "bus": ORANGE,
    "config": CYAN,
}


@dataclass
class LogConfig:
    """Logger configuration.

    ``components`` switches components on or off; a dotted component such
    as ``mcp.github`` falls back to the switch of its root (``mcp``).
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_params: bool = True  # include the context dict in colored output
    truncate_at: int = 200
    components: dict[str, bool] = field(default_factory=dict)
    output: TextIO = field(default=sys.stderr)


class MeshLogger:
    """Writes one line per entry to ``config.output``.

    Every toolmesh component logs through ``_log`` with its component name;
    per-server lifecycle logging goes through ``server()``.
    """

    def __init__(self, config: LogConfig | None = None):
        self.config = config or LogConfig()

    def server(self, server_id: str, server_name: str | None = None) -> "ServerLogger":
        return ServerLogger(self, server_id, server_name)

    def configure(self, config: LogConfig) -> None:
        self.config = config

    def enabled_for(self, level: LogLevel, component: str) -> bool:
        """Whether an entry would be written."""
        if _LEVEL_RANK.get(level, 0) < _LEVEL_RANK.get(self.config.level, 1):
            return False
        switches = self.config.components
        root = component.split(".", 1)[0]
        return switches.get(component, switches.get(root, True))

    def _log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Write an entry.

        Args:
            level: Log level
            component: Component name (e.g. "router", "mcp.<server>", "bus")
            message: Log message
            context: Extra fields; merged into JSON entries, appended to
                colored lines
        """
        if not self.enabled_for(level, component):
            return

        if self.config.format == LogFormat.JSON:
            line = self._render_json(level, component, message, context)
        else:
            line = self._render_colored(level, component, message, context)
        print(line, file=self.config.output)

    def _render_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None,
    ) -> str:
        timestamp = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        entry: dict[str, Any] = {
            "timestamp": timestamp,
            "level": level.value,
            "component": component,
            "message": message,
            **(context or {}),
        }
        return json.dumps(entry, default=str)

    def _render_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None,
    ) -> str:
        tag_color = _COMPONENT_COLORS.get(component.split(".", 1)[0], RESET)
        text_color = _LEVEL_COLORS.get(level, RESET)
        line = f"{tag_color}[{component.upper()}]{RESET} {text_color}{message}{RESET}"

        if not context or not self.config.show_params:
            return line
        rendered = str(context)
        limit = self.config.truncate_at
        if len(rendered) > limit:
            rendered = rendered[:limit] + "..."
        return f"{line} {LIGHT_BLUE}{rendered}{RESET}"


class ServerLogger:
    """Logger for per-server lifecycle and tool call events."""

    def __init__(self, parent: MeshLogger, server_id: str, server_name: str | None = None):
        self.parent = parent
        self.server_id = server_id
        self.server_name = server_name or server_id

    @property
    def component(self) -> str:
        return f"mcp.{self.server_id}"

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        context: dict[str, Any] = {"server_id": self.server_id, "event": event}
        context.update({k: v for k, v in extra.items() if v is not None})
        return context

    def connecting(self, transport: str, endpoint: str | None = None) -> None:
        """Log a connection attempt."""
        message = f"Connecting to '{self.server_name}' (transport={transport})"
        self.parent._log(
            LogLevel.INFO,
            self.component,
            message,
            self._context("server_connecting", transport=transport, endpoint=endpoint),
        )

    def connected(self, tool_count: int) -> None:
        """Log a completed handshake and discovery."""
        message = f"Connected to '{self.server_name}' with {tool_count} tools ✓"
        self.parent._log(
            LogLevel.INFO,
            self.component,
            message,
            self._context("server_connected", tool_count=tool_count),
        )

    def failed(self, error: Exception) -> None:
        """Log a failed connection attempt."""
        message = f"Failed to connect to '{self.server_name}': {error}"
        self.parent._log(
            LogLevel.ERROR,
            self.component,
            message,
            self._context("server_failed", error=str(error), error_type=type(error).__name__),
        )

    def aborted(self) -> None:
        """Log a deliberately cancelled connection attempt."""
        message = f"Connection to '{self.server_name}' was aborted"
        self.parent._log(LogLevel.INFO, self.component, message, self._context("server_aborted"))

    def disconnected(self) -> None:
        """Log a disconnect."""
        message = f"Disconnected from '{self.server_name}'"
        self.parent._log(
            LogLevel.INFO, self.component, message, self._context("server_disconnected")
        )

    def tool_calling(self, tool_name: str, arguments: dict[str, Any] | None = None) -> None:
        """Log a tool invocation."""
        message = f"Calling tool '{tool_name}'"
        self.parent._log(
            LogLevel.INFO,
            self.component,
            message,
            self._context("tool_calling", tool_name=tool_name, arguments=arguments or None),
        )

    def tool_result(self, tool_name: str, is_error: bool, duration_ms: int) -> None:
        """Log a tool invocation outcome."""
        duration_s = duration_ms / 1000
        if is_error:
            message = f"Tool '{tool_name}' returned an error ({duration_s:.2f}s)"
            level = LogLevel.WARN
        else:
            message = f"Tool '{tool_name}' completed ({duration_s:.2f}s) ✓"
            level = LogLevel.INFO
        self.parent._log(
            level,
            self.component,
            message,
            self._context(
                "tool_result", tool_name=tool_name, is_error=is_error, duration_ms=duration_ms
            ),
        )


_default_logger: MeshLogger | None = None


def get_logger() -> MeshLogger:
    """Get the process default logger, creating it on first use."""
    global _default_logger  # noqa: PLW0603
    if _default_logger is None:
        _default_logger = MeshLogger()
    return _default_logger


def set_logger(logger: MeshLogger) -> None:
    """Replace the process default logger."""
    global _default_logger  # noqa: PLW0603
    _default_logger = logger
