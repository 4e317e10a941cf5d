"""Inline-object ownership tracker.

Maps dict and list values nested inside a node (its "inline objects") back
to the id of the node that contains them, so code holding only a fragment,
such as a frontmatter dict handed to a resolver, can find the owning node.

Dicts and lists are neither hashable nor weak-referenceable, so the table
is keyed by ``id(value)``.  Each entry keeps the value itself alongside the
owner id: while the entry exists the value cannot be collected and its
identity token cannot be reused by another object.  Entries are released
with ``untrack`` when the owning node is replaced or deleted, and the whole
table is scoped to one ``Store``.  Nothing is ever written onto the value.

Shared values:
    If the same object is nested in two nodes, the most recent ``track``
    wins.  ``untrack`` of the earlier owner leaves the later entry alone.

"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

_SKIPPED_KEYS = frozenset({"internal"})


def _is_inline(value: object) -> bool:
    return isinstance(value, (dict, list))


def _walk(value: object, seen: set[int]):
    """Yield every dict/list reachable from ``value``, each object once."""
    if not _is_inline(value) or id(value) in seen:
        return
    seen.add(id(value))
    yield value
    children = value.values() if isinstance(value, dict) else value
    for child in children:
        yield from _walk(child, seen)


def _inline_values(node: Mapping[str, Any]):
    seen: set[int] = set()
    for key, value in node.items():
        if key in _SKIPPED_KEYS:
            continue
        yield from _walk(value, seen)


class InlineObjectTracker:
    """Side table from inline values to their owning node id.

    Thread-safe: the table is protected by a lock so snapshot saves running
    on the timer thread never observe a half-updated table.

    """

    __slots__ = ("_by_node", "_lock", "_owners")

    def __init__(self) -> None:
        # id(value) -> (value, owner node id)
        self._owners: dict[int, tuple[object, str]] = {}
        # owner node id -> identity tokens it owns
        self._by_node: dict[str, set[int]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)

    def track(self, node: Mapping[str, Any]) -> Mapping[str, Any]:
        """Register every inline value in ``node`` as owned by ``node["id"]``.

        The ``internal`` block is skipped.  Primitive fields are ignored.
        Re-tracking an unchanged node re-registers the same associations.

        Returns:
            The node, unchanged.

        """
        node_id = node["id"]
        with self._lock:
            for value in _inline_values(node):
                token = id(value)
                previous = self._owners.get(token)
                if previous is not None and previous[1] != node_id:
                    self._by_node.get(previous[1], set()).discard(token)
                self._owners[token] = (value, node_id)
                self._by_node.setdefault(node_id, set()).add(token)
        return node

    def untrack(self, node: Mapping[str, Any]) -> int:
        """Release entries that ``node`` still owns.

        Values re-tracked under another node since are left untouched.

        Returns:
            Number of entries released.

        """
        node_id = node["id"]
        with self._lock:
            tokens = self._by_node.pop(node_id, set())
            released = 0
            for token in tokens:
                entry = self._owners.get(token)
                if entry is not None and entry[1] == node_id:
                    del self._owners[token]
                    released += 1
            return released

    def get_owner_node_id(self, value: object) -> str | None:
        """Return the id of the node owning ``value``, or None.

        None is returned for primitives and for values never tracked.

        """
        if not _is_inline(value):
            return None
        with self._lock:
            entry = self._owners.get(id(value))
        if entry is None or entry[0] is not value:
            return None
        return entry[1]

    def clear(self) -> None:
        """Drop every association."""
        with self._lock:
            self._owners.clear()
            self._by_node.clear()
