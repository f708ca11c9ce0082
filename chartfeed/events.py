"""
In-process event bus for chart lifecycle notifications.

Events are frozen dataclasses. Handlers subscribe to an event class and also
receive events of its subclasses, so a handler on ``DomainEvent`` sees
everything the cache publishes.
"""

import asyncio
import logging
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

log = logging.getLogger(__name__)


EventHandler = Callable[["DomainEvent"], None | Awaitable[None]]


def event(cls):
    return dataclass(frozen=True, slots=True)(cls)


@dataclass(frozen=True, slots=True, kw_only=True)
class DomainEvent(ABC):
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class EventDispatcher:
    """Async dispatcher for chart events.

    Handlers can be sync or async. They run one after another in subscription
    order, most specific event class first. A failing handler is logged and
    skipped.
    """

    def __init__(self):
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """Register *handler* for *event_type* and its subclasses."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._handlers[event_type]

    def handler_count(self, event_type: type[DomainEvent]) -> int:
        return len(self._handlers.get(event_type, ()))

    def clear(self) -> None:
        self._handlers.clear()

    def _handlers_for(self, event_type: type) -> list[EventHandler]:
        # Snapshot so handlers may unsubscribe while being dispatched
        handlers: list[EventHandler] = []
        for cls in event_type.__mro__:
            handlers.extend(self._handlers.get(cls, ()))
        return handlers

    async def publish(self, event: DomainEvent) -> None:
        """Dispatch *event* to every matching handler."""
        for handler in self._handlers_for(type(event)):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                log.error(
                    "Event handler %s failed for %s: %s",
                    getattr(handler, "__name__", handler),
                    type(event).__name__,
                    e,
                    exc_info=True,
                )


# Lazy singleton
_dispatcher: EventDispatcher | None = None


def get_dispatcher() -> EventDispatcher:
    """Process-wide dispatcher shared by caches built with ``build_cache``."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher()
    return _dispatcher
