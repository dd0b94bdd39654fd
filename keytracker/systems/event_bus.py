"""Event bus - fault-isolated fan-out of zone change notifications."""

from __future__ import annotations
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventBus:
    """Explicit subscriber list; one failing handler never stops the others."""

    def __init__(self, name: str = "zone_change") -> None:
        self.name = name
        self._handlers: list[Handler] = []
        self._once_handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        """Register a handler for every publish."""
        if handler not in self._handlers:
            self._handlers.append(handler)

    def once(self, handler: Handler) -> None:
        """Register a handler for the next publish only."""
        self._once_handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)
        if handler in self._once_handlers:
            self._once_handlers.remove(handler)

    def __len__(self) -> int:
        return len(self._handlers) + len(self._once_handlers)

    def publish(self, *args: Any, **kwargs: Any) -> int:
        """Call every handler. Returns how many handlers raised."""
        failures = 0
        once, self._once_handlers = self._once_handlers, []
        for handler in [*self._handlers, *once]:
            try:
                handler(*args, **kwargs)
            except Exception:
                failures += 1
                logger.exception("%s handler %r failed", self.name, handler)
        return failures
