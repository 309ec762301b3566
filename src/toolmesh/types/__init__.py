"""Shared types for toolmesh.

Import from here rather than submodules:
    from toolmesh.types import LogLevel, TransportKind
"""

from .enums import (
    BusEvent,
    ClientEvent,
    ConnectionStatus,
    LogFormat,
    LogLevel,
    TransportKind,
)
from .tools import ToolSchema
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "TransportKind",
    "ConnectionStatus",
    "ClientEvent",
    "BusEvent",
    # Tools
    "ToolSchema",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
