"""Unit tests for structured errors, the registry and the factory."""

import asyncio

import httpx
import pytest

from toolmesh.errors import (
    ErrorCategory,
    ErrorFactory,
    ErrorRegistry,
    ErrorTemplate,
    ToolmeshError,
    create_error,
    wrap_error,
)


class TestRegistry:
    @pytest.fixture
    def registry(self) -> ErrorRegistry:
        return ErrorRegistry()

    def test_interpolates_message(self, registry: ErrorRegistry) -> None:
        error = registry.create("REQUEST_TIMEOUT", {"method": "tools/call", "timeout_seconds": 30})

        assert error.message == "Request timeout for method: tools/call"
        assert error.detail == "No response arrived within 30s"
        assert error.category == ErrorCategory.TRANSPORT
        assert error.retryable
        assert error.method == "tools/call"

    def test_missing_context_keeps_template(self, registry: ErrorRegistry) -> None:
        error = registry.create("SERVER_NOT_FOUND")

        assert error.message == "MCP server not found: {server_id}"

    def test_unknown_code(self, registry: ErrorRegistry) -> None:
        with pytest.raises(ValueError, match="Unknown error code"):
            registry.create("NOPE")

    def test_register_custom_template(self, registry: ErrorRegistry) -> None:
        registry.register(
            ErrorTemplate(
                code="QUOTA_EXCEEDED",
                category=ErrorCategory.ROUTER,
                message_template="Quota exceeded for {server_id}",
            )
        )

        assert "QUOTA_EXCEEDED" in registry.list_codes()
        assert registry.create("QUOTA_EXCEEDED", {"server_id": "a"}).server_id == "a"


class TestToolmeshError:
    def test_is_exception_with_message(self) -> None:
        error = create_error("CLIENT_DISCONNECTED", server_id="srv")

        assert isinstance(error, Exception)
        assert str(error) == "Client disconnected"
        assert error.to_dict()["server_id"] == "srv"

    def test_abort_flag(self) -> None:
        assert create_error("CONNECTION_ABORTED").is_abort
        assert not create_error("CONNECTION_TIMEOUT", timeout_seconds=10).is_abort

    def test_with_context_keeps_existing(self) -> None:
        error = create_error("HTTP_ERROR", detail="x", server_id="a")

        copy = error.with_context(server_id="b", method="tools/list")

        assert copy.server_id == "a"
        assert copy.method == "tools/list"
        assert copy is not error


class TestFactory:
    def test_timeout(self) -> None:
        error = wrap_error(asyncio.TimeoutError(), method="tools/list")

        assert error.code == "REQUEST_TIMEOUT"
        assert error.method == "tools/list"

    def test_http_status(self) -> None:
        request = httpx.Request("POST", "https://example.org/mcp")
        response = httpx.Response(502, request=request)
        exc = httpx.HTTPStatusError("bad gateway", request=request, response=response)

        error = wrap_error(exc)

        assert error.code == "HTTP_ERROR"
        assert str(error) == "HTTP request failed: 502 Bad Gateway"
        assert error.retryable

    def test_transport_error(self) -> None:
        request = httpx.Request("GET", "https://example.org/sse")

        error = wrap_error(httpx.ConnectError("refused", request=request), server_id="s")

        assert error.code == "HTTP_ERROR"
        assert error.server_id == "s"

    def test_generic(self) -> None:
        error = ErrorFactory().from_exception(KeyError("missing"))

        assert error.code == "INTERNAL_ERROR"
        assert not error.retryable

    def test_passthrough(self) -> None:
        original = create_error("PROTOCOL_ERROR", detail="bad")

        assert isinstance(wrap_error(original), ToolmeshError)
        assert wrap_error(original).message == "bad"
