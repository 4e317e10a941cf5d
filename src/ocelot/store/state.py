"""Store state — the immutable aggregate the reducers produce.

A new ``StoreState`` is built for every dispatched action; the previous one
is never modified, so a reader holding a state always sees a complete,
committed view.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ocelot.store.actions import Action

# Keys of the persisted subset, as written to the snapshot file.
PERSISTED_KEYS = ("nodes", "status", "componentDataDependencies")


@dataclass(frozen=True, slots=True)
class StoreState:
    """Everything the store holds.

    Attributes:
        nodes: Node id -> node.
        status: Plugin-private status, ``{"plugins": {name: {...}}}``.
        component_data_dependencies: Page path -> ids of nodes the page read.
        pages: Page path -> page record (orchestration state, not persisted).
        last_action: The action that produced this state.

    """

    nodes: dict[str, dict[str, Any]] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)
    component_data_dependencies: dict[str, frozenset[str]] = field(default_factory=dict)
    pages: dict[str, dict[str, Any]] = field(default_factory=dict)
    last_action: Action | None = None

    def to_snapshot(self) -> dict[str, Any]:
        """Return the JSON-ready persisted subset.

        Dependency sets are written as sorted lists.

        """
        return {
            "nodes": self.nodes,
            "status": self.status,
            "componentDataDependencies": {
                path: sorted(ids) for path, ids in self.component_data_dependencies.items()
            },
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> StoreState:
        """Rebuild a state from a snapshot produced by ``to_snapshot``.

        Entries of the wrong shape are skipped rather than failing the whole
        restore.

        """
        raw_nodes = data.get("nodes")
        nodes: dict[str, dict[str, Any]] = {}
        if isinstance(raw_nodes, Mapping):
            for node_id, node in raw_nodes.items():
                if isinstance(node, dict) and isinstance(node.get("internal"), dict):
                    nodes[str(node_id)] = node

        raw_status = data.get("status")
        status = dict(raw_status) if isinstance(raw_status, Mapping) else {}

        raw_deps = data.get("componentDataDependencies")
        deps: dict[str, frozenset[str]] = {}
        if isinstance(raw_deps, Mapping):
            for path, ids in raw_deps.items():
                if isinstance(ids, (list, tuple, set, frozenset)):
                    deps[str(path)] = frozenset(str(i) for i in ids)

        return cls(nodes=nodes, status=status, component_data_dependencies=deps)
