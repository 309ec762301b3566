"""Toolmesh configuration loader."""

import os
import re
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from toolmesh.errors import create_error
from toolmesh.logging import LogConfig, MeshLogger
from toolmesh.types import (
    LogFormat,
    LogLevel,
    TransportKind,
    ValidationIssue,
    ValidationResult,
)

from .models import (
    ClientSettings,
    LoggingConfig,
    MCPServerConfig,
    MeshConfig,
    RouterSettings,
)

if TYPE_CHECKING:
    from toolmesh.store import ServerStore

CONFIG_PATH_ENV = "TOOLMESH_CONFIG_PATH"
DEFAULT_CONFIG_FILE = "toolmesh.yaml"

# ${NAME}, ${NAME:-default} or ${NAME:?message}
_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<op>[?-])(?P<arg>[^}]*))?\}")


def _substitute(match: re.Match[str]) -> str:
    name, op, arg = match.group("name", "op", "arg")
    value = os.environ.get(name)
    if value is not None:
        return value
    if op == "-":
        return arg or ""
    message = (arg if op == "?" else None) or f"Required environment variable {name} not set"
    raise create_error("CONFIG_INVALID", detail=message)


def resolve_env_vars(value: str) -> str:
    """Expand environment references in ``value``.

    ``${VAR}`` must be set, ``${VAR:-default}`` falls back to ``default`` and
    ``${VAR:?message}`` fails with ``message`` when unset.

    Raises:
        ToolmeshError: CONFIG_INVALID if a required variable is not set
    """
    return _ENV_REFERENCE.sub(_substitute, value)


def _expand(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    if isinstance(data, list):
        return [_expand(item) for item in data]
    if isinstance(data, dict):
        return {key: _expand(value) for key, value in data.items()}
    return data


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise create_error("CONFIG_INVALID", detail=f"Invalid YAML in config file: {e}") from e
    if not isinstance(data, dict):
        raise create_error(
            "CONFIG_INVALID", detail=f"Configuration root must be a mapping: {path}"
        )
    return data


class ConfigLoader:
    """Load and validate toolmesh configuration."""

    VALID_KEYS = {"client", "router", "logging", "servers"}

    def __init__(self, logger: MeshLogger | None = None):
        self._config: MeshConfig | None = None
        self._config_path: Path | None = None
        self._logger = logger

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger:
            self._logger._log(level, "config", message)

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> MeshConfig:
        """Load configuration from a YAML file.

        Without ``path`` the first existing candidate is used:
        ``$TOOLMESH_CONFIG_PATH``, ``./toolmesh.yaml``, ``~/.toolmesh/config.yaml``.
        String values are expanded with ``resolve_env_vars``.

        Raises:
            ToolmeshError: If the file is missing (and ``use_defaults`` is
                False), unreadable as YAML, or fails validation
        """
        config_path = Path(path) if path is not None else self._resolve_config_path()

        if not config_path.exists():
            if not use_defaults:
                raise create_error(
                    "CONFIG_INVALID", detail=f"Configuration file not found: {config_path}"
                )
            self._log(LogLevel.INFO, "No config file found, using default configuration")
            return self.load_defaults()

        return self.load_from_dict(_expand(_read_yaml(config_path)), config_path)

    def load_defaults(self) -> MeshConfig:
        """Load default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(self, data: dict[str, Any], config_path: Path | None = None) -> MeshConfig:
        """Load configuration from dictionary.

        Raises:
            ToolmeshError: If configuration is invalid
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )
        for warning in validation.warnings:
            self._log(LogLevel.WARN, f"{warning.path}: {warning.message}")

        try:
            config = self._dict_to_config(data)
        except (KeyError, TypeError, ValueError) as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Failed to parse configuration: {e}",
            ) from e

        self._config = config
        self._config_path = config_path
        self._log(LogLevel.INFO, f"Configuration loaded ({len(config.servers)} servers)")
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading."""
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        for key in data:
            if key not in self.VALID_KEYS:
                warnings.append(
                    ValidationIssue(
                        path=key,
                        message=f"Unknown configuration key: {key}",
                        severity="warning",
                    )
                )

        client = data.get("client", {})
        if not isinstance(client, dict):
            errors.append(ValidationIssue(path="client", message="client must be a dictionary"))
        else:
            for timeout_key in ("connect_timeout", "request_timeout", "streaming_timeout"):
                if timeout_key in client:
                    value = client[timeout_key]
                    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                        errors.append(
                            ValidationIssue(
                                path=f"client.{timeout_key}",
                                message=f"{timeout_key} must be a positive number",
                            )
                        )

        router = data.get("router", {})
        if not isinstance(router, dict):
            errors.append(ValidationIssue(path="router", message="router must be a dictionary"))
        elif "proxy_prefix" in router and not str(router["proxy_prefix"]).startswith("/"):
            errors.append(
                ValidationIssue(
                    path="router.proxy_prefix",
                    message="proxy_prefix must start with '/'",
                )
            )

        servers = data.get("servers", [])
        if not isinstance(servers, list):
            errors.append(ValidationIssue(path="servers", message="servers must be a list"))
            servers = []

        seen_ids: set[str] = set()
        for index, server in enumerate(servers):
            path = f"servers[{index}]"
            if not isinstance(server, dict):
                errors.append(ValidationIssue(path=path, message="server must be a dictionary"))
                continue
            server_id = server.get("id")
            if not server_id:
                errors.append(ValidationIssue(path=f"{path}.id", message="id is required"))
            elif str(server_id) in seen_ids:
                errors.append(
                    ValidationIssue(path=f"{path}.id", message=f"duplicate id: {server_id}")
                )
            else:
                seen_ids.add(str(server_id))

            transport = server.get("transport", TransportKind.STREAMING.value)
            if transport not in {kind.value for kind in TransportKind}:
                errors.append(
                    ValidationIssue(
                        path=f"{path}.transport",
                        message=f"Unknown transport type: {transport}",
                    )
                )
            elif transport == TransportKind.LOCAL_PROCESS.value:
                if not server.get("command"):
                    errors.append(
                        ValidationIssue(
                            path=f"{path}.command",
                            message="local-process servers require a command",
                        )
                    )
            elif not server.get("endpoint"):
                errors.append(
                    ValidationIssue(
                        path=f"{path}.endpoint",
                        message=f"{transport} servers require an endpoint",
                    )
                )

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def get(self) -> MeshConfig:
        """Get current configuration.

        Raises:
            ToolmeshError: If configuration not loaded
        """
        if self._config is None:
            raise create_error("CONFIG_INVALID", detail="Configuration not loaded")
        return self._config

    def _resolve_config_path(self) -> Path:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path)

        local_path = Path(DEFAULT_CONFIG_FILE)
        if local_path.exists():
            return local_path

        home_path = Path.home() / ".toolmesh" / "config.yaml"
        if home_path.exists():
            return home_path

        return local_path

    def _dict_to_config(self, data: dict[str, Any]) -> MeshConfig:
        client_data = _known_fields(ClientSettings, data.get("client") or {})
        router_data = _known_fields(RouterSettings, data.get("router") or {})
        logging_data = _known_fields(LoggingConfig, data.get("logging") or {})

        if "level" in logging_data:
            logging_data["level"] = LogLevel(str(logging_data["level"]).upper())
        if "format" in logging_data:
            logging_data["format"] = LogFormat(str(logging_data["format"]).lower())

        return MeshConfig(
            client=ClientSettings(**client_data),
            router=RouterSettings(**router_data),
            logging=LoggingConfig(**logging_data),
            servers=[MCPServerConfig.from_dict(server) for server in data.get("servers") or []],
        )


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def build_logger(config: LoggingConfig) -> MeshLogger:
    """Create a MeshLogger from the logging section."""
    return MeshLogger(
        LogConfig(
            level=config.level,
            format=config.format,
            show_params=config.show_params,
            truncate_at=config.truncate_at,
            components=dict(config.components),
        )
    )


async def seed_store(store: "ServerStore", config: MeshConfig) -> list[MCPServerConfig]:
    """Create configured servers that the store does not know yet.

    Existing records are left untouched so discovered tools and error
    state survive a restart.

    Returns:
        The records that were created
    """
    created = []
    for server in config.servers:
        if await store.get_by_id(server.id) is None:
            created.append(await store.create(server))
    return created
