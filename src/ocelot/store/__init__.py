"""Node store — the persisted content graph and its reactive dispatch.

Actions flow through pure reducers into an immutable ``StoreState``; every
committed action is emitted on the store's ``EventEmitter``, which feeds the
debounced snapshot writer and the plugin API runner.
"""

from ocelot.store.actions import Action
from ocelot.store.content import load_node_content
from ocelot.store.dependencies import PageDependencyTracker
from ocelot.store.digest import content_digest
from ocelot.store.emitter import WILDCARD, EventEmitter
from ocelot.store.ownership import InlineObjectTracker
from ocelot.store.persistence import Debouncer, SnapshotStore
from ocelot.store.state import StoreState
from ocelot.store.store import Store

__all__ = [
    "WILDCARD",
    "Action",
    "Debouncer",
    "EventEmitter",
    "InlineObjectTracker",
    "PageDependencyTracker",
    "SnapshotStore",
    "Store",
    "StoreState",
    "content_digest",
    "load_node_content",
]
