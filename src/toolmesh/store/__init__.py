"""Server configuration storage."""

from .base import ServerStore
from .memory import InMemoryServerStore

__all__ = ["ServerStore", "InMemoryServerStore"]
