"""Toolmesh logging - component-scoped colored or JSON logging."""

from .colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from .logger import (
    LogConfig,
    MeshLogger,
    ServerLogger,
    get_logger,
    set_logger,
)

__all__ = [
    # Logger classes
    "MeshLogger",
    "ServerLogger",
    "LogConfig",
    "get_logger",
    "set_logger",
    # Colors
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
