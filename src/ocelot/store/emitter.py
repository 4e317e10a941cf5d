"""Event emitter — typed pub/sub for dispatched actions.

Every action the store commits is emitted under its type.  Handlers
registered for ``"*"`` receive every event, after the type-specific
handlers, in subscription order.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.store.actions import Action

    from typing import TypeAlias

    Handler: TypeAlias = Callable[[Action], None]

WILDCARD = "*"


class EventEmitter:
    """Synchronous event bus keyed by action type.

    Handlers run on the emitting thread, in the order they subscribed.  A
    handler list is snapshotted before the loop, so subscribing or
    unsubscribing from inside a handler takes effect on the next emit.

    Thread-safe: the handler map is protected by a lock.

    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """Subscribe ``handler`` to ``event_type`` (or ``"*"``).

        Returns:
            A callable that removes the subscription.

        """
        with self._lock:
            self._handlers[event_type].append(handler)
        return lambda: self.off(event_type, handler)

    def off(self, event_type: str, handler: Handler) -> None:
        """Remove a subscription; unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[event_type]

    def handler_count(self, event_type: str | None = None) -> int:
        """Number of handlers for ``event_type``, or across all types."""
        with self._lock:
            if event_type is not None:
                return len(self._handlers.get(event_type, ()))
            return sum(len(h) for h in self._handlers.values())

    def emit(self, event_type: str, action: Action) -> None:
        """Deliver ``action`` to ``event_type`` handlers, then wildcard handlers."""
        with self._lock:
            typed = list(self._handlers.get(event_type, ()))
            wildcard = list(self._handlers.get(WILDCARD, ())) if event_type != WILDCARD else []
        for handler in typed:
            handler(action)
        for handler in wildcard:
            handler(action)
