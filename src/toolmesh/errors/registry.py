"""Error registry for creating errors from templates."""

from typing import Any

from .errors import ErrorCategory, ErrorTemplate, ToolmeshError


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, code: str) -> ErrorTemplate | None:
        """Get template by error code."""
        return self._templates.get(code)

    def list_codes(self) -> list[str]:
        """List all registered error codes."""
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Add or replace a template."""
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        cause: ToolmeshError | None = None,
    ) -> ToolmeshError:
        """Create error instance from template + context.

        Args:
            code: Error code
            context: Context variables for template interpolation
            cause: Optional cause error

        Returns:
            ToolmeshError instance

        Raises:
            ValueError: If error code not found
        """
        template = self.get_template(code)
        if not template:
            msg = f"Unknown error code: {code}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, context)
        detail = self._interpolate(template.detail_template, context)
        suggestion = self._interpolate(template.suggestion_template, context)

        if message is None:
            message = f"Error {code}"

        return ToolmeshError(
            code=template.code,
            category=template.category,
            message=message,
            detail=detail,
            suggestion=suggestion,
            retryable=template.default_retryable,
            server_id=context.get("server_id"),
            method=context.get("method"),
            rpc_code=context.get("rpc_code"),
            cause=cause,
        )

    def _interpolate(
        self,
        template: str | None,
        context: dict[str, Any],
    ) -> str | None:
        """Safe string interpolation.

        Missing context variables leave the template untouched.
        """
        if template is None:
            return None

        try:
            return template.format(**context)
        except KeyError:
            return template

    def _load_builtin_templates(self) -> None:
        """Load hardcoded built-in templates."""
        # CONFIG Errors
        self._templates["CONFIG_INVALID"] = ErrorTemplate(
            code="CONFIG_INVALID",
            category=ErrorCategory.CONFIG,
            message_template="{detail}",
            detail_template="The configuration is invalid",
            suggestion_template="Check the server definition and settings",
        )

        self._templates["TRANSPORT_UNKNOWN"] = ErrorTemplate(
            code="TRANSPORT_UNKNOWN",
            category=ErrorCategory.CONFIG,
            message_template="Unknown transport type: {transport}",
            detail_template="No client implementation exists for this transport",
            suggestion_template="Use one of: http-dual-channel, streaming, local-process",
        )

        # TRANSPORT Errors
        self._templates["TRANSPORT_UNSUPPORTED"] = ErrorTemplate(
            code="TRANSPORT_UNSUPPORTED",
            category=ErrorCategory.TRANSPORT,
            message_template=(
                "Stdio transport is not supported in this environment. "
                "Consider using an HTTP transport or setting up an MCP proxy."
            ),
            detail_template="This runtime cannot spawn local processes for '{command}'",
            suggestion_template="Run the server behind a proxy that exposes an HTTP transport",
        )

        self._templates["CONNECTION_FAILED"] = ErrorTemplate(
            code="CONNECTION_FAILED",
            category=ErrorCategory.TRANSPORT,
            message_template="{detail}",
            detail_template="Could not establish a connection to the MCP server",
            suggestion_template="Check that the MCP server is running and accessible",
            default_retryable=True,
        )

        self._templates["CONNECTION_TIMEOUT"] = ErrorTemplate(
            code="CONNECTION_TIMEOUT",
            category=ErrorCategory.TRANSPORT,
            message_template="Connection timeout",
            detail_template="The push channel did not open within {timeout_seconds}s",
            suggestion_template="Check that the server exposes an SSE endpoint",
            default_retryable=True,
        )

        self._templates["CONNECTION_ABORTED"] = ErrorTemplate(
            code="CONNECTION_ABORTED",
            category=ErrorCategory.TRANSPORT,
            message_template="Connection aborted",
            detail_template="The connection attempt was cancelled by the caller",
        )

        self._templates["REQUEST_TIMEOUT"] = ErrorTemplate(
            code="REQUEST_TIMEOUT",
            category=ErrorCategory.TRANSPORT,
            message_template="Request timeout for method: {method}",
            detail_template="No response arrived within {timeout_seconds}s",
            suggestion_template="Check if the server handler is stuck or increase the timeout",
            default_retryable=True,
        )

        self._templates["CLIENT_DISCONNECTED"] = ErrorTemplate(
            code="CLIENT_DISCONNECTED",
            category=ErrorCategory.TRANSPORT,
            message_template="Client disconnected",
            detail_template="The client disconnected before a response arrived",
        )

        self._templates["CLIENT_NOT_CONNECTED"] = ErrorTemplate(
            code="CLIENT_NOT_CONNECTED",
            category=ErrorCategory.TRANSPORT,
            message_template="{transport} client is not connected",
            suggestion_template="Call connect() before sending requests",
        )

        self._templates["HTTP_ERROR"] = ErrorTemplate(
            code="HTTP_ERROR",
            category=ErrorCategory.TRANSPORT,
            message_template="{detail}",
            detail_template="The HTTP exchange with the MCP server failed",
            default_retryable=True,
        )

        # PROTOCOL Errors
        self._templates["PROTOCOL_ERROR"] = ErrorTemplate(
            code="PROTOCOL_ERROR",
            category=ErrorCategory.PROTOCOL,
            message_template="{detail}",
            detail_template="The server answered with a JSON-RPC error",
        )

        # ROUTER Errors
        self._templates["SERVER_NOT_FOUND"] = ErrorTemplate(
            code="SERVER_NOT_FOUND",
            category=ErrorCategory.ROUTER,
            message_template="MCP server not found: {server_id}",
            suggestion_template="Register the server before connecting",
        )

        self._templates["SERVER_NOT_CONNECTED"] = ErrorTemplate(
            code="SERVER_NOT_CONNECTED",
            category=ErrorCategory.ROUTER,
            message_template="Server {server_id} is not connected",
            suggestion_template="Connect the server before calling its tools",
        )

        self._templates["STORE_UPDATE_FAILED"] = ErrorTemplate(
            code="STORE_UPDATE_FAILED",
            category=ErrorCategory.ROUTER,
            message_template="Failed to update server tools",
            detail_template="The store returned no record for '{server_id}'",
        )

        # SYSTEM Errors
        self._templates["INTERNAL_ERROR"] = ErrorTemplate(
            code="INTERNAL_ERROR",
            category=ErrorCategory.SYSTEM,
            message_template="{detail}",
            detail_template="Unexpected {error_type}",
        )
