"""Page dependency tracker — which pages read which nodes.

Answers the incremental-rebuild question "this node changed, which pages
must re-render?".  Dependencies are recorded as a side effect of reading:
page data is resolved through ``get_node_and_save_path_dependency`` so
every node a page consumed is remembered against the page path.

Stale entries are never retracted piecemeal.  Before a page's data is
recomputed, ``reset_path`` clears its whole set and the read pass rebuilds
it from scratch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ocelot.store.actions import create_page_dependency, delete_page_dependencies

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ocelot.store.store import Store


class PageDependencyTracker:
    """Records and queries page -> node dependencies held in the store.

    Args:
        store: The node store; dependency records live in its state so they
            persist with the snapshot.

    """

    __slots__ = ("_store",)

    def __init__(self, store: Store) -> None:
        self._store = store

    def get_node_and_save_path_dependency(self, node_id: str, path: str) -> dict[str, Any] | None:
        """Return node ``node_id`` and record that ``path`` depends on it.

        The dependency is recorded even when the node does not exist yet, so
        creating it later still marks ``path`` for rebuild.  Recording an
        existing dependency is a no-op.

        """
        node = self._store.get_node(node_id)
        if node_id not in self.dependencies_of(path):
            self._store.dispatch(create_page_dependency(path, node_id))
        return node

    def dependencies_of(self, path: str) -> frozenset[str]:
        """Node ids the page at ``path`` has read."""
        return self._store.state.component_data_dependencies.get(path, frozenset())

    def pages_depending_on(self, node_id: str) -> frozenset[str]:
        """Page paths that read node ``node_id``."""
        deps = self._store.state.component_data_dependencies
        return frozenset(path for path, ids in deps.items() if node_id in ids)

    def pages_affected_by(self, node_ids: Iterable[str]) -> frozenset[str]:
        """Page paths that read any of ``node_ids``."""
        wanted = set(node_ids)
        deps = self._store.state.component_data_dependencies
        return frozenset(path for path, ids in deps.items() if ids & wanted)

    def reset_path(self, path: str) -> None:
        """Forget everything ``path`` depended on, before recomputing it."""
        if path in self._store.state.component_data_dependencies:
            self._store.dispatch(delete_page_dependencies([path]))

    def reset_all(self) -> None:
        """Forget every recorded dependency."""
        paths = list(self._store.state.component_data_dependencies)
        if paths:
            self._store.dispatch(delete_page_dependencies(paths))
