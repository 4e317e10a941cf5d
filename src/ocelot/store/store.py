"""Node store — the single source of truth for content nodes.

All mutation goes through ``Store.dispatch``: the action runs through the
pure reducers, the new state is committed, inline objects are re-tracked,
and only then is the action emitted under its type.  Reads always observe
the last committed state.

Lifecycle::

    store = Store.from_snapshot(config.snapshot_path)   # restore or start empty
    store.dispatch(create_node(node))                     # mutate
    store.get_node(node["id"])                            # read
    store.close()                                         # flush pending save

"""

from __future__ import annotations

import sys
import time
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ocelot._errors import StoreError
from ocelot.observability.collector import StoreCollector
from ocelot.store import actions as a
from ocelot.store.emitter import WILDCARD, EventEmitter
from ocelot.store.ownership import InlineObjectTracker
from ocelot.store.persistence import Debouncer, SnapshotStore
from ocelot.store.reducers import root_reducer
from ocelot.store.state import StoreState

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.config import OcelotConfig
    from ocelot.store.actions import Action


def _touched_node_ids(
    action: Action,
    before: dict[str, dict[str, Any]],
    after: dict[str, dict[str, Any]],
) -> set[str]:
    """Ids whose node object ``action`` may have replaced, added or removed."""
    if action.type == a.CREATE_NODE:
        parent_id = action.payload.get("parent")
        return {action.payload["id"], parent_id} if parent_id else {action.payload["id"]}
    if action.type == a.ADD_FIELD_TO_NODE:
        return {action.payload["id"]}
    if action.type in (a.DELETE_NODE, a.DELETE_NODES):
        doomed = before.keys() - after.keys()
        parents = {before[node_id].get("parent") for node_id in doomed}
        return doomed | {p for p in parents if p in after}
    return before.keys() | after.keys()


class Store:
    """Single-writer in-memory node store with debounced persistence.

    Dispatch is synchronous.  An action dispatched from inside an event
    handler is reduced and committed immediately, but its event is queued
    behind the event being delivered, so events always fire in dispatch
    order.

    Args:
        state: Initial state (empty if omitted).
        snapshot: Where to persist; persistence is off when None.
        save_debounce: Quiet window before a pending save runs, in seconds.
        collector: Observability collector shared with the runner and build.

    """

    def __init__(
        self,
        state: StoreState | None = None,
        *,
        snapshot: SnapshotStore | None = None,
        save_debounce: float = 1.0,
        collector: StoreCollector | None = None,
    ) -> None:
        self._state = state if state is not None else StoreState()
        self._snapshot = snapshot
        self._collector = collector if collector is not None else StoreCollector()
        self._emitter = EventEmitter()
        self._tracker = InlineObjectTracker()
        self._pending_events: deque[Action] = deque()
        self._emitting = False
        self._closed = False
        self._reducing = False
        self._debouncer: Debouncer | None = None

        for node in self._state.nodes.values():
            self._tracker.track(node)

        if snapshot is not None:
            self._debouncer = Debouncer(save_debounce, self._save)
            self._emitter.on(WILDCARD, self._schedule_save)

    @classmethod
    def from_snapshot(
        cls,
        path: Path,
        *,
        save_debounce: float = 1.0,
        collector: StoreCollector | None = None,
    ) -> Store:
        """Create a store restored from the snapshot at ``path``.

        A missing or corrupt snapshot silently yields an empty store.  The
        ownership table is rebuilt for every restored node.

        """
        snapshot = SnapshotStore(path)
        collector = collector if collector is not None else StoreCollector()
        data = snapshot.load()
        state = StoreState.from_snapshot(data) if data is not None else StoreState()
        collector.record_snapshot_load(
            str(path), restored=data is not None, node_count=len(state.nodes)
        )
        return cls(state, snapshot=snapshot, save_debounce=save_debounce, collector=collector)

    @classmethod
    def from_config(cls, config: OcelotConfig, *, collector: StoreCollector | None = None) -> Store:
        """Create a store from the configured snapshot location."""
        return cls.from_snapshot(
            config.snapshot_path, save_debounce=config.save_debounce, collector=collector
        )

    # ----- Accessors -----

    @property
    def state(self) -> StoreState:
        """The last committed state."""
        return self._state

    def get_state(self) -> StoreState:
        """The last committed state."""
        return self._state

    @property
    def emitter(self) -> EventEmitter:
        """Event bus; every committed action is emitted on it."""
        return self._emitter

    @property
    def tracker(self) -> InlineObjectTracker:
        """Inline-object ownership table for the nodes held by this store."""
        return self._tracker

    @property
    def collector(self) -> StoreCollector:
        """Observability collector."""
        return self._collector

    @property
    def closed(self) -> bool:
        return self._closed

    def get_node(self, node_id: str) -> dict[str, Any] | None:
        """Return the node with ``node_id``, or None."""
        return self._state.nodes.get(node_id)

    def get_nodes(self) -> list[dict[str, Any]]:
        """Return all nodes (empty list when there are none)."""
        return list(self._state.nodes.values())

    def get_nodes_by_type(self, node_type: str) -> list[dict[str, Any]]:
        """Return all nodes whose ``internal.type`` is ``node_type``."""
        return [n for n in self._state.nodes.values() if n["internal"].get("type") == node_type]

    def has_node_changed(self, node_id: str, digest: str) -> bool:
        """True if no node ``node_id`` exists or its content digest differs."""
        node = self._state.nodes.get(node_id)
        if node is None:
            return True
        return node["internal"].get("contentDigest") != digest

    def get_owner_node_id(self, value: object) -> str | None:
        """Return the id of the node containing inline ``value``, or None."""
        return self._tracker.get_owner_node_id(value)

    def get_page(self, path: str) -> dict[str, Any] | None:
        return self._state.pages.get(path)

    def get_pages(self) -> list[dict[str, Any]]:
        return list(self._state.pages.values())

    # ----- Mutation -----

    def dispatch(self, action: Action) -> Action:
        """Reduce ``action`` into a new committed state, then emit it.

        Raises:
            StoreError: If the store has been closed, or when called from
                inside a reducer.

        """
        if self._closed:
            msg = f"cannot dispatch {action.type}: store is closed"
            raise StoreError(msg)
        if self._reducing:
            msg = f"cannot dispatch {action.type} from inside a reducer"
            raise StoreError(msg)

        previous = self._state
        t0 = time.perf_counter()
        self._reducing = True
        try:
            self._state = root_reducer(previous, action)
        finally:
            self._reducing = False
        reduce_ms = (time.perf_counter() - t0) * 1000

        if previous.nodes is not self._state.nodes:
            self._sync_ownership(action, previous.nodes, self._state.nodes)

        self._collector.record_action(
            action.type,
            plugin=action.plugin,
            node_count=len(self._state.nodes),
            reduce_ms=reduce_ms,
        )

        self._pending_events.append(action)
        if not self._emitting:
            self._drain_events()
        return action

    def subscribe(self, handler: Callable[[Action], None]) -> Callable[[], None]:
        """Receive every committed action.  Returns an unsubscribe callable."""
        return self._emitter.on(WILDCARD, handler)

    def _drain_events(self) -> None:
        self._emitting = True
        try:
            while self._pending_events:
                action = self._pending_events.popleft()
                self._emitter.emit(action.type, action)
        finally:
            self._emitting = False

    def _sync_ownership(
        self,
        action: Action,
        before: dict[str, dict[str, Any]],
        after: dict[str, dict[str, Any]],
    ) -> None:
        changed = [
            (before.get(node_id), after.get(node_id))
            for node_id in _touched_node_ids(action, before, after)
        ]
        for old, new in changed:
            if old is not None and old is not new:
                self._tracker.untrack(old)
        for old, new in changed:
            if new is not None and old is not new:
                self._tracker.track(new)

    # ----- Persistence -----

    def _schedule_save(self, action: Action) -> None:
        if self._debouncer is not None:
            self._debouncer.trigger(self._state)

    def _save(self, state: StoreState) -> None:
        """Write ``state``; failures are recorded, never raised."""
        assert self._snapshot is not None
        path = str(self._snapshot.path)
        try:
            self._snapshot.save(state)
        except (OSError, TypeError, ValueError) as exc:
            self._collector.record_snapshot_save(
                path, ok=False, node_count=len(state.nodes), error=str(exc)
            )
            print(f"  Snapshot save failed: {exc}", file=sys.stderr)
            return
        self._collector.record_snapshot_save(path, ok=True, node_count=len(state.nodes))

    def flush_snapshot(self) -> bool:
        """Run a pending save now.  Returns True if one was pending."""
        if self._debouncer is None:
            return False
        return self._debouncer.flush()

    def close(self) -> None:
        """Flush any pending save and refuse further dispatches."""
        if self._closed:
            return
        self.flush_snapshot()
        self._closed = True
