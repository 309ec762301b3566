"""Toolmesh notification bus."""

from .bus import EventBus, EventCallback, Unsubscribe

__all__ = ["EventBus", "EventCallback", "Unsubscribe"]
