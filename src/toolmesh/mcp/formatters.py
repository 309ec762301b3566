"""Tool catalog and tool result formatters for chat-style prompts."""

import json
import re
from typing import Any

from toolmesh.logging import MeshLogger, get_logger
from toolmesh.types import LogLevel

from .types import ParsedToolCall, ServerTool, ToolCallResult

TOOL_BLOCK_PATTERN = re.compile(r"```tool\s*([\s\S]*?)```")

_USAGE_LINES = [
    "## Available Tools",
    "",
    "You have access to the following tools. To use a tool, include a tool call "
    "in your response using this format:",
    "",
    "```tool",
    "{",
    '  "tool": "tool_name",',
    '  "arguments": {',
    '    "param1": "value1",',
    '    "param2": "value2"',
    "  }",
    "}",
    "```",
    "",
]


def build_tool_descriptions(tools: list[ServerTool]) -> str:
    """Render a Markdown tool catalog grouped by server.

    Args:
        tools: Tools with their owning servers

    Returns:
        Markdown text, or "" when there are no tools
    """
    if not tools:
        return ""

    lines = list(_USAGE_LINES)

    by_server: dict[str, list[ServerTool]] = {}
    for item in tools:
        by_server.setdefault(f"{item.server_name} ({item.server_id})", []).append(item)

    for label, server_tools in by_server.items():
        lines.append(f"### {label}")
        lines.append("")
        for item in server_tools:
            lines.extend(_describe_tool(item))
            lines.append("")

    return "\n".join(lines)


def _describe_tool(item: ServerTool) -> list[str]:
    tool = item.tool
    lines = [f"**{tool.name}**"]
    if tool.description:
        lines.append(tool.description)

    schema = tool.input_schema or {}
    properties = schema.get("properties")
    if isinstance(properties, dict) and properties:
        required = set(schema.get("required") or [])
        lines.append("")
        lines.append("Parameters:")
        for param, info in properties.items():
            info = info if isinstance(info, dict) else {}
            type_part = f": {info['type']}" if info.get("type") else ""
            required_part = " (required)" if param in required else ""
            desc_part = f" - {info['description']}" if info.get("description") else ""
            lines.append(f"- `{param}`{type_part}{required_part}{desc_part}")
    return lines


def parse_tool_calls(content: str, logger: MeshLogger | None = None) -> list[ParsedToolCall]:
    """Extract ```tool blocks from model output.

    Blocks that are not JSON objects with a string ``tool`` are skipped.
    """
    calls = []
    for match in TOOL_BLOCK_PATTERN.finditer(content):
        raw = match.group(1).strip()
        try:
            parsed: Any = json.loads(raw)
        except ValueError:
            (logger or get_logger())._log(
                LogLevel.WARN, "router", "Failed to parse tool call", {"raw": raw}
            )
            continue

        if not isinstance(parsed, dict):
            continue
        tool = parsed.get("tool")
        if not tool or not isinstance(tool, str):
            continue

        arguments = parsed.get("arguments")
        calls.append(
            ParsedToolCall(
                tool=tool,
                arguments=arguments if isinstance(arguments, dict) else {},
                raw=raw,
            )
        )
    return calls


def format_tool_result(tool_name: str, result: ToolCallResult) -> str:
    """Render a tool result for inclusion in the conversation."""
    lines = [f"**Tool Result: {tool_name}**"]

    if result.is_error:
        lines.extend(["", "*Error:*"])

    for block in result.content:
        block_type = block.get("type")
        if block_type == "text" and block.get("text"):
            lines.extend(["", block["text"]])
        elif block_type == "image" and block.get("data"):
            lines.extend(["", f"[Image: {block.get('mimeType') or 'unknown type'}]"])
        elif block_type == "resource":
            lines.extend(["", "[Resource content]"])

    return "\n".join(lines)
