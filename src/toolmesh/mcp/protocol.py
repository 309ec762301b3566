"""JSON-RPC 2.0 envelope helpers for MCP communication."""

import json
from typing import Any

RequestId = int | str

NOTIFICATION_PREFIX = "notifications/"


class JSONRPCMessage:
    """JSON-RPC 2.0 message builder and parser."""

    @staticmethod
    def request(
        method: str, params: dict[str, Any] | None = None, id: RequestId = 1
    ) -> dict[str, Any]:
        """Build a JSON-RPC request.

        Args:
            method: Method name (e.g., "initialize", "tools/list", "tools/call")
            params: Optional parameters
            id: Request ID

        Returns:
            JSON-RPC request dict
        """
        msg: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": id,
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build a JSON-RPC notification (no id, no response expected)."""
        msg: dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def success_response(id: RequestId, result: Any) -> dict[str, Any]:
        """Build a JSON-RPC success response."""
        return {
            "jsonrpc": "2.0",
            "id": id,
            "result": result,
        }

    @staticmethod
    def error_response(id: RequestId, code: int, message: str, data: Any = None) -> dict[str, Any]:
        """Build a JSON-RPC error response.

        Args:
            id: Request ID
            code: Error code
            message: Error message
            data: Optional error data

        Returns:
            JSON-RPC response dict
        """
        error: dict[str, Any] = {
            "code": code,
            "message": message,
        }
        if data is not None:
            error["data"] = data

        return {
            "jsonrpc": "2.0",
            "id": id,
            "error": error,
        }

    @staticmethod
    def parse(message: str | bytes) -> Any:
        """Parse a JSON-RPC message.

        Raises:
            ValueError: If message is not valid JSON
        """
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        return json.loads(message)

    @staticmethod
    def is_notification_method(method: str) -> bool:
        """Methods under ``notifications/`` are fire-and-forget."""
        return method.startswith(NOTIFICATION_PREFIX)

    @staticmethod
    def is_response(message: Any) -> bool:
        """Check if message is a response (has an id and 'result' or 'error')."""
        return (
            isinstance(message, dict)
            and "id" in message
            and "method" not in message
            and ("result" in message or "error" in message)
        )

    @staticmethod
    def is_error(message: dict[str, Any]) -> bool:
        """Check if message is an error response."""
        return message.get("error") is not None

    @staticmethod
    def get_result(message: dict[str, Any]) -> Any:
        """Extract result from a response message (None when absent)."""
        return message.get("result")

    @staticmethod
    def get_error(message: dict[str, Any]) -> dict[str, Any]:
        """Extract the error object from an error response.

        Raises:
            KeyError: If message has no error
        """
        error: dict[str, Any] = message["error"]
        return error

    @staticmethod
    def error_message(message: dict[str, Any]) -> str:
        """Human-readable message of an error response."""
        error = message.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or "Unknown error")
        return str(error) if error is not None else "Unknown error"
