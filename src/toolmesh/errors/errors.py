"""Toolmesh error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error source categories."""

    CONFIG = "CONFIG"
    TRANSPORT = "TRANSPORT"
    PROTOCOL = "PROTOCOL"
    ROUTER = "ROUTER"
    SYSTEM = "SYSTEM"


@dataclass
class ToolmeshError(Exception):
    """Structured error with context. Base exception for all toolmesh errors."""

    # Identity
    code: str  # e.g., "REQUEST_TIMEOUT"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    retryable: bool = False
    server_id: str | None = None
    method: str | None = None  # JSON-RPC method in flight, if any
    rpc_code: int | None = None  # JSON-RPC error code from the server, if any

    cause: "ToolmeshError | None" = None

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def is_abort(self) -> bool:
        """True when the error marks a deliberate cancellation."""
        return self.code == "CONNECTION_ABORTED"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and event payloads.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "retryable": self.retryable,
            "server_id": self.server_id,
            "method": self.method,
            "rpc_code": self.rpc_code,
            "timestamp": self.timestamp.isoformat(),
            "cause": self.cause.to_dict() if self.cause else None,
        }

    def with_context(
        self,
        server_id: str | None = None,
        method: str | None = None,
    ) -> "ToolmeshError":
        """Return a copy, filling in context the error does not carry yet.

        Args:
            server_id: Optional server identity
            method: Optional JSON-RPC method

        Returns:
            New ToolmeshError instance with updated context
        """
        return ToolmeshError(
            code=self.code,
            category=self.category,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retryable=self.retryable,
            server_id=self.server_id or server_id,
            method=self.method or method,
            rpc_code=self.rpc_code,
            cause=self.cause,
            timestamp=self.timestamp,
        )


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "Server '{server_id}' is not connected"
    detail_template: str | None = None
    suggestion_template: str | None = None
    default_retryable: bool = False


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]
    retryable: bool | None = None  # None = use template default


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: Exception) -> bool:
        """Check if this matcher handles the error."""

    @abstractmethod
    def extract(self, error: Exception) -> MatchResult:
        """Extract toolmesh error info from the exception."""
