"""Toolmesh configuration - settings models and YAML loader."""

from .loader import ConfigLoader, build_logger, resolve_env_vars, seed_store
from .models import (
    PROTOCOL_VERSION,
    ClientSettings,
    LoggingConfig,
    MCPServerConfig,
    MeshConfig,
    RouterSettings,
)

__all__ = [
    "PROTOCOL_VERSION",
    "ClientSettings",
    "RouterSettings",
    "LoggingConfig",
    "MCPServerConfig",
    "MeshConfig",
    "ConfigLoader",
    "build_logger",
    "resolve_env_vars",
    "seed_store",
]
