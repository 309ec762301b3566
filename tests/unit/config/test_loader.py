"""Unit tests for ConfigLoader and environment interpolation."""

from pathlib import Path

import pytest
import yaml

from toolmesh.config import (
    ConfigLoader,
    MCPServerConfig,
    build_logger,
    resolve_env_vars,
    seed_store,
)
from toolmesh.errors import ToolmeshError
from toolmesh.store import InMemoryServerStore
from toolmesh.types import LogFormat, LogLevel, TransportKind


class TestResolveEnvVars:
    def test_set_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MCP_TOKEN", "abc")
        assert resolve_env_vars("Bearer ${MCP_TOKEN}") == "Bearer abc"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MCP_HOST", raising=False)
        assert resolve_env_vars("${MCP_HOST:-localhost}") == "localhost"

    def test_required_with_message(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MCP_TOKEN", raising=False)
        with pytest.raises(ToolmeshError, match="token please"):
            resolve_env_vars("${MCP_TOKEN:?token please}")

    def test_required_without_message(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MCP_TOKEN", raising=False)
        with pytest.raises(ToolmeshError, match="MCP_TOKEN not set"):
            resolve_env_vars("${MCP_TOKEN}")


class TestConfigLoader:
    @pytest.fixture
    def loader(self) -> ConfigLoader:
        return ConfigLoader()

    def test_defaults(self, loader: ConfigLoader) -> None:
        config = loader.load_defaults()

        assert config.client.connect_timeout == 10.0
        assert config.client.request_timeout == 30.0
        assert config.client.streaming_timeout == 60.0
        assert config.router.proxy_prefix == "/mcp-proxy"
        assert config.servers == []

    def test_load_yaml(
        self, loader: ConfigLoader, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        path = tmp_path / "toolmesh.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "client": {"request_timeout": 5},
                    "router": {"origin": "http://localhost:3000"},
                    "logging": {"level": "debug", "format": "JSON"},
                    "servers": [
                        {
                            "id": "github",
                            "name": "GitHub",
                            "transport": "http-dual-channel",
                            "endpoint": "https://mcp.github.example/mcp",
                            "authToken": "${GITHUB_TOKEN}",
                        },
                        {"id": "files", "transport": "local-process", "command": "mcp-files"},
                    ],
                }
            )
        )

        config = loader.load(path)

        assert config.client.request_timeout == 5
        assert config.router.origin == "http://localhost:3000"
        assert config.logging.level == LogLevel.DEBUG
        assert config.logging.format == LogFormat.JSON
        github, files = config.servers
        assert github.transport == TransportKind.DUAL_CHANNEL
        assert github.auth_token == "ghp_test"
        assert files.name == "files"
        assert loader.get() is config

    def test_env_var_path(
        self, loader: ConfigLoader, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("router:\n  proxy_prefix: /proxy\n")
        monkeypatch.setenv("TOOLMESH_CONFIG_PATH", str(path))

        assert loader.load().router.proxy_prefix == "/proxy"

    def test_missing_file_without_defaults(self, loader: ConfigLoader, tmp_path: Path) -> None:
        with pytest.raises(ToolmeshError, match="not found"):
            loader.load(tmp_path / "absent.yaml", use_defaults=False)

    def test_invalid_yaml(self, loader: ConfigLoader, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("servers: [unclosed\n")

        with pytest.raises(ToolmeshError, match="Invalid YAML"):
            loader.load(path)

    def test_get_before_load(self, loader: ConfigLoader) -> None:
        with pytest.raises(ToolmeshError):
            loader.get()


class TestValidation:
    @pytest.fixture
    def loader(self) -> ConfigLoader:
        return ConfigLoader()

    def test_reports_all_problems(self, loader: ConfigLoader) -> None:
        result = loader.validate(
            {
                "client": {"request_timeout": 0},
                "router": {"proxy_prefix": "mcp-proxy"},
                "servers": [
                    {"id": "a", "transport": "streaming"},
                    {"id": "a", "transport": "local-process"},
                    {"transport": "smoke-signal"},
                ],
                "extra": True,
            }
        )

        assert not result.valid
        paths = {issue.path for issue in result.errors}
        assert paths == {
            "client.request_timeout",
            "router.proxy_prefix",
            "servers[0].endpoint",
            "servers[1].id",
            "servers[1].command",
            "servers[2].id",
            "servers[2].transport",
        }
        assert [issue.path for issue in result.warnings] == ["extra"]

    def test_invalid_config_raises(self, loader: ConfigLoader) -> None:
        with pytest.raises(ToolmeshError, match="Configuration validation failed"):
            loader.load_from_dict({"servers": [{"id": "x", "transport": "streaming"}]})


class TestHelpers:
    def test_build_logger(self) -> None:
        config = ConfigLoader().load_from_dict(
            {"logging": {"level": "WARN", "components": {"bus": False}}}
        )

        logger = build_logger(config.logging)

        assert logger.config.level == LogLevel.WARN
        assert logger.config.components == {"bus": False}

    @pytest.mark.asyncio
    async def test_seed_store_keeps_existing(self) -> None:
        store = InMemoryServerStore(
            [MCPServerConfig(id="a", name="A", endpoint="https://a", last_error="old")]
        )
        config = ConfigLoader().load_from_dict(
            {
                "servers": [
                    {"id": "a", "name": "A2", "endpoint": "https://a2"},
                    {"id": "b", "endpoint": "https://b"},
                ]
            }
        )

        created = await seed_store(store, config)

        assert [server.id for server in created] == ["b"]
        assert (await store.get_by_id("a")).last_error == "old"
