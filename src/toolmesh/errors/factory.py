"""Turns foreign exceptions and error codes into ToolmeshErrors."""

from typing import Any

from .errors import ToolmeshError
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry


class ErrorFactory:
    """Registry plus matcher chain.

    ``create`` builds from a known code; ``from_exception`` classifies an
    arbitrary exception first.
    """

    def __init__(
        self,
        registry: ErrorRegistry | None = None,
        matcher_chain: ErrorMatcherChain | None = None,
    ):
        self.registry = registry or ErrorRegistry()
        self.matcher_chain = matcher_chain or ErrorMatcherChain()

    def from_exception(
        self,
        error: Exception,
        server_id: str | None = None,
        method: str | None = None,
    ) -> ToolmeshError:
        """Normalize ``error``. ToolmeshErrors pass through with context filled in."""
        if isinstance(error, ToolmeshError):
            return error.with_context(server_id=server_id, method=method)

        match = self.matcher_chain.match(error)
        context = {
            **match.context,
            **{k: v for k, v in (("server_id", server_id), ("method", method)) if v},
        }

        wrapped = self.registry.create(code=match.code, context=context)
        if match.retryable is not None:
            wrapped.retryable = match.retryable
        return wrapped

    def create(
        self, code: str, context: dict[str, Any] | None = None, **kwargs: Any
    ) -> ToolmeshError:
        return self.registry.create(code=code, context={**(context or {}), **kwargs})


_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Process-wide factory, created on first use."""
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(code: str, **context: Any) -> ToolmeshError:
    """Build the registered error ``code``.

    Context keys fill the message templates; ``server_id``, ``method``
    and ``rpc_code`` are also copied onto the error.
    """
    return get_error_factory().create(code, context)


def wrap_error(error: Exception, **context: Any) -> ToolmeshError:
    return get_error_factory().from_exception(error, **context)
