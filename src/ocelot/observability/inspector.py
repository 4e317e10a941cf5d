"""Development state inspector.

Enabled with ``OCELOT_DEVTOOLS=true`` (or ``devtools: true`` in the site
config).  Attaches to the store as a wildcard listener, keeps a bounded
history of actions with the store size after each one, and prints a
one-line trace per action to stderr.
"""

from __future__ import annotations

import sys
import threading
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.store.actions import Action
    from ocelot.store.store import Store


@dataclass(frozen=True, slots=True)
class InspectedAction:
    """One entry in the inspector history.

    Attributes:
        sequence: 1-based dispatch sequence number.
        action_type: The action type.
        plugin: Dispatching plugin, if any.
        node_count: Nodes in the store after the action.
        page_count: Pages in the store after the action.

    """

    sequence: int
    action_type: str
    plugin: str | None
    node_count: int
    page_count: int


class StateInspector:
    """Records and traces every action a store commits.

    Args:
        max_history: Number of actions to keep.
        stream: Where trace lines go (stderr by default); None silences them.

    """

    def __init__(self, max_history: int = 500, stream: TextIO | None = sys.stderr) -> None:
        self._history: deque[InspectedAction] = deque(maxlen=max_history)
        self._stream = stream
        self._sequence = 0
        self._lock = threading.Lock()
        self._store: Store | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self, store: Store) -> StateInspector:
        """Start listening to ``store``.  Re-attaching moves the listener."""
        self.detach()
        self._store = store
        self._unsubscribe = store.subscribe(self._on_action)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._store = None

    @property
    def attached(self) -> bool:
        return self._store is not None

    def history(self) -> list[InspectedAction]:
        """Recorded actions, oldest first."""
        with self._lock:
            return list(self._history)

    def counts_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self.history():
            counts[entry.action_type] = counts.get(entry.action_type, 0) + 1
        return counts

    def _on_action(self, action: Action) -> None:
        assert self._store is not None
        state = self._store.state
        with self._lock:
            self._sequence += 1
            entry = InspectedAction(
                sequence=self._sequence,
                action_type=action.type,
                plugin=action.plugin,
                node_count=len(state.nodes),
                page_count=len(state.pages),
            )
            self._history.append(entry)
        if self._stream is not None:
            by = f" by {entry.plugin}" if entry.plugin else ""
            print(
                f"  [devtools #{entry.sequence}] {entry.action_type}{by} "
                f"-> {entry.node_count} nodes, {entry.page_count} pages",
                file=self._stream,
            )
