"""Unit tests for development proxy rewriting."""

import pytest

from toolmesh.mcp import is_local_host, proxy_endpoint, should_auto_proxy


class TestIsLocalHost:
    @pytest.mark.parametrize(
        "host", ["localhost", "127.0.0.1", "192.168.1.20", "devbox.local", "LOCALHOST"]
    )
    def test_local(self, host: str) -> None:
        assert is_local_host(host)

    @pytest.mark.parametrize("host", ["example.org", "10.0.0.1", "local.example.org", "", None])
    def test_not_local(self, host) -> None:
        assert not is_local_host(host)


class TestShouldAutoProxy:
    def test_local_origin_external_https(self) -> None:
        assert should_auto_proxy("http://localhost:3000", "https://example.org/mcp")

    def test_public_origin(self) -> None:
        assert not should_auto_proxy("https://app.example.com", "https://example.org/mcp")

    def test_plain_http_target(self) -> None:
        assert not should_auto_proxy("http://localhost:3000", "http://example.org/mcp")

    def test_local_target(self) -> None:
        assert not should_auto_proxy("http://localhost:3000", "https://192.168.0.5/mcp")

    def test_missing_origin_or_endpoint(self) -> None:
        assert not should_auto_proxy(None, "https://example.org/mcp")
        assert not should_auto_proxy("http://localhost:3000", None)


class TestProxyEndpoint:
    def test_rewrite(self) -> None:
        assert (
            proxy_endpoint("http://localhost:3000", "https://aitools.example.com/mcp")
            == "http://localhost:3000/mcp-proxy/aitools.example.com/mcp"
        )

    def test_keeps_port_and_query(self) -> None:
        assert (
            proxy_endpoint("http://localhost:3000/", "https://api.example.com:8443/v1/mcp?x=1")
            == "http://localhost:3000/mcp-proxy/api.example.com:8443/v1/mcp?x=1"
        )

    def test_custom_prefix(self) -> None:
        assert (
            proxy_endpoint("http://localhost:5173", "https://example.org/mcp", prefix="/p")
            == "http://localhost:5173/p/example.org/mcp"
        )

    @pytest.mark.parametrize("endpoint", ["/relative/mcp", "http://example.org/mcp"])
    def test_non_https_unchanged(self, endpoint: str) -> None:
        assert proxy_endpoint("http://localhost:3000", endpoint) == endpoint
