"""In-process publish/subscribe.

Services announce domain events (``lead:created``, ``lead:updated``, ...)
on an :class:`EventBus`; anything in the process can subscribe. Handlers run
synchronously in the publisher's thread.

A shared bus is available as :data:`event_bus`.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from vopex.exceptions import VopexError

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Any]


@dataclass
class Subscription:
    """Returned by :meth:`EventBus.subscribe`; call :meth:`unsubscribe` to detach."""

    bus: EventBus
    event: str
    handler: EventHandler

    def unsubscribe(self) -> None:
        self.bus.unsubscribe(self.event, self.handler)


class EventBus:
    """Named events with any number of handlers per event.

    Handlers are called in subscription order. :meth:`publish` isolates
    handler failures; :meth:`publish_strict` does not.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._lock = threading.RLock()

    def subscribe(self, event: str, handler: EventHandler) -> Subscription:
        with self._lock:
            handlers = self._handlers.setdefault(event, [])
            if handler not in handlers:
                handlers.append(handler)
        return Subscription(self, event, handler)

    def subscribe_once(self, event: str, handler: EventHandler) -> Subscription:
        """Subscribe *handler* for the next publish of *event* only."""

        def once(*args: Any, **kwargs: Any) -> Any:
            self.unsubscribe(event, once)
            return handler(*args, **kwargs)

        return self.subscribe(event, once)

    def unsubscribe(self, event: str, handler: EventHandler | None = None) -> None:
        """Remove *handler* from *event*, or every handler when none is given."""
        with self._lock:
            handlers = self._handlers.get(event)
            if handlers is None:
                return
            if handler is None:
                handlers.clear()
            elif handler in handlers:
                handlers.remove(handler)

    def publish(self, event: str, *args: Any, **kwargs: Any) -> None:
        """Call every handler of *event*. Handler errors are logged and skipped."""
        for handler in self._snapshot(event):
            try:
                handler(*args, **kwargs)
            except Exception:
                logger.exception("Error in event handler for %s", event)

    def publish_strict(self, event: str, *args: Any, **kwargs: Any) -> None:
        """Like :meth:`publish`, but fail loudly.

        Raises:
            VopexError: If *event* has no subscribers.
            Exception: The first handler error, unchanged. Later handlers
                do not run.
        """
        handlers = self._snapshot(event)
        if not handlers:
            raise VopexError(f"No subscribers for event: {event}")
        for handler in handlers:
            handler(*args, **kwargs)

    def create_middleware(
        self,
        event: str,
        middleware: Callable[..., None],
    ) -> Subscription:
        """Put *middleware* in front of the current handlers of *event*.

        The existing handlers are detached and only reached through
        ``middleware(*args, next, **kwargs)``, i.e. the published arguments
        with ``next`` appended as the last positional one. Calling
        ``next(*modified, **modified_kwargs)`` delivers those to each of
        them. Handlers subscribed afterwards are not behind the middleware.
        """
        with self._lock:
            downstream = list(self._handlers.get(event, []))
            self._handlers[event] = []

        def forward(*args: Any, **kwargs: Any) -> None:
            for handler in downstream:
                handler(*args, **kwargs)

        def wrapped(*args: Any, **kwargs: Any) -> None:
            middleware(*args, forward, **kwargs)

        return self.subscribe(event, wrapped)

    def throttle(
        self,
        event: str,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> Callable[..., None]:
        """Return a publisher for *event* that fires at most once per *interval* seconds."""
        last: list[float | None] = [None]

        def publisher(*args: Any, **kwargs: Any) -> None:
            now = clock()
            if last[0] is None or now - last[0] >= interval:
                last[0] = now
                self.publish(event, *args, **kwargs)

        return publisher

    def stats(self) -> dict[str, int]:
        """Subscriber count per event name."""
        with self._lock:
            return {event: len(handlers) for event, handlers in self._handlers.items()}

    def _snapshot(self, event: str) -> list[EventHandler]:
        with self._lock:
            return list(self._handlers.get(event, []))


event_bus = EventBus()
