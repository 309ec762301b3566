"""Error matchers for converting foreign exceptions to ToolmeshErrors."""

import asyncio
from typing import Any

import httpx

from .errors import ErrorMatcher, MatchResult


class TimeoutErrorMatcher(ErrorMatcher):
    """Matches bare asyncio / builtin timeouts."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, (asyncio.TimeoutError, TimeoutError))

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="REQUEST_TIMEOUT",
            context={"method": "unknown", "timeout_seconds": "unknown"},
            retryable=True,
        )


class HTTPStatusErrorMatcher(ErrorMatcher):
    """Matches httpx errors raised by ``Response.raise_for_status``."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, httpx.HTTPStatusError)

    def extract(self, error: Exception) -> MatchResult:
        assert isinstance(error, httpx.HTTPStatusError)
        response = error.response
        return MatchResult(
            code="HTTP_ERROR",
            context={
                "detail": (
                    f"HTTP request failed: {response.status_code} {response.reason_phrase}"
                ),
                "status_code": response.status_code,
            },
            # Only server-side failures are worth retrying
            retryable=response.status_code >= 500,
        )


class HTTPTransportErrorMatcher(ErrorMatcher):
    """Matches httpx network-level failures (DNS, refused, reset, read timeout)."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, httpx.TransportError)

    def extract(self, error: Exception) -> MatchResult:
        context: dict[str, Any] = {"detail": f"{type(error).__name__}: {error}"}
        if isinstance(error, httpx.TimeoutException):
            context["detail"] = f"HTTP request timed out: {error}"
        return MatchResult(code="HTTP_ERROR", context=context, retryable=True)


class GenericErrorMatcher(ErrorMatcher):
    """Fallback matcher for any exception."""

    def matches(self, error: Exception) -> bool:
        return True

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="INTERNAL_ERROR",
            context={
                "detail": str(error) or type(error).__name__,
                "error_type": type(error).__name__,
            },
            retryable=False,
        )


class ErrorMatcherChain:
    """Ordered chain of matchers. First match wins."""

    def __init__(self) -> None:
        """Initialize matcher chain with built-in matchers."""
        self.matchers: list[ErrorMatcher] = []
        self._load_builtin_matchers()

    def match(self, error: Exception) -> MatchResult:
        """Find first matching matcher and extract result.

        Args:
            error: Exception to match

        Returns:
            MatchResult from first matching matcher
        """
        for matcher in self.matchers:
            if matcher.matches(error):
                return matcher.extract(error)

        # Unreachable while GenericErrorMatcher is last
        return MatchResult(code="INTERNAL_ERROR", context={"detail": str(error)})

    def _load_builtin_matchers(self) -> None:
        """Load built-in matchers in priority order."""
        # HTTPStatusError is not a TransportError, order only matters for the fallback
        self.matchers = [
            TimeoutErrorMatcher(),
            HTTPStatusErrorMatcher(),
            HTTPTransportErrorMatcher(),
            GenericErrorMatcher(),  # Fallback - must be last
        ]
