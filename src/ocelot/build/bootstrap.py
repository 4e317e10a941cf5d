"""Bootstrap — bring the node store up to date with the site's sources.

Order:
    1. Restore the store from its snapshot (empty if missing or corrupt).
    2. Resolve plugins: built-ins first, then configured plugins.
    3. ``source_nodes`` on every plugin; queued action hooks drain once
       all of them have returned.
    4. Delete stale nodes: nodes from a previous run that no source
       created or touched this time.
    5. ``create_pages``; pages nobody re-created are deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ocelot.config import PluginSpec
from ocelot.observability.collector import StoreCollector
from ocelot.observability.inspector import StateInspector
from ocelot.plugins import filesystem, markdown
from ocelot.plugins.registry import PluginRegistry
from ocelot.plugins.runner import ApiRunner
from ocelot.store import actions as a
from ocelot.store.store import Store

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.observability.log import EventLog


@dataclass(slots=True)
class Session:
    """Everything a build or develop run works with.

    Attributes:
        config: Resolved site configuration.
        store: The node store.
        runner: Plugin API runner bound to the store.
        inspector: Dev state inspector, when devtools is enabled.

    """

    config: OcelotConfig
    store: Store
    runner: ApiRunner
    inspector: StateInspector | None = None

    @property
    def registry(self) -> PluginRegistry:
        return self.runner.registry

    @property
    def log(self) -> EventLog:
        return self.store.collector.log

    def close(self) -> None:
        """Detach listeners and flush the pending snapshot save."""
        self.runner.detach()
        if self.inspector is not None:
            self.inspector.detach()
        self.store.close()


def builtin_plugin_specs(config: OcelotConfig) -> tuple[PluginSpec, ...]:
    """The built-in source and transformer, unless configured explicitly."""
    configured = {spec.name for spec in config.plugins}
    builtins = (
        PluginSpec(
            name=filesystem.NAME,
            resolve=filesystem.__name__,
            options={"path": config.content_dir},
        ),
        PluginSpec(name=markdown.NAME, resolve=markdown.__name__),
    )
    return tuple(spec for spec in builtins if spec.name not in configured)


def create_session(config: OcelotConfig, *, collector: StoreCollector | None = None) -> Session:
    """Restore the store and resolve plugins, without running any hooks."""
    specs = (*builtin_plugin_specs(config), *config.plugins)
    registry = PluginRegistry.from_specs(specs, config.root)
    store = Store.from_config(config, collector=collector or StoreCollector())
    inspector = None
    if config.devtools:
        inspector = StateInspector()
        inspector.attach(store)
    return Session(config=config, store=store, runner=ApiRunner(store, registry), inspector=inspector)


# ---------------------------------------------------------------------------
# Sourcing
# ---------------------------------------------------------------------------


def _root_of(nodes: dict[str, dict[str, Any]], node: dict[str, Any]) -> dict[str, Any]:
    seen = {node["id"]}
    while (parent := nodes.get(node.get("parent") or "")) is not None and parent["id"] not in seen:
        seen.add(parent["id"])
        node = parent
    return node


def find_stale_nodes(store: Store, registry: PluginRegistry, seen: set[str]) -> list[dict[str, Any]]:
    """Root nodes not created or touched during this sourcing run.

    Only nodes owned by a sourcing plugin (or by a plugin that is no longer
    registered) can go stale.  Deleting a root removes its descendants.

    """
    nodes = store.state.nodes
    stale: list[dict[str, Any]] = []
    for node in nodes.values():
        if _root_of(nodes, node) is not node or node["id"] in seen:
            continue
        owner = registry.get(node["internal"].get("owner"))
        if owner is None or owner.has_hook("source_nodes"):
            stale.append(node)
    return stale


async def source_nodes(session: Session) -> int:
    """Run ``source_nodes`` and sweep stale nodes.

    Returns:
        Number of stale root nodes deleted.

    """
    seen: set[str] = set()

    def _mark(action: a.Action) -> None:
        if action.type == a.CREATE_NODE:
            seen.add(action.payload["id"])
        elif action.type == a.TOUCH_NODE:
            seen.add(action.payload)

    unsubscribe = session.store.subscribe(_mark)
    try:
        await session.runner.run_api("source_nodes", config=session.config)
    finally:
        unsubscribe()

    stale = find_stale_nodes(session.store, session.registry, seen)
    if stale:
        session.store.dispatch(a.delete_nodes(stale))
        await session.runner.flush()
    return len(stale)


async def create_pages(session: Session) -> int:
    """Run ``create_pages`` and delete pages no plugin re-created.

    Returns:
        Number of pages registered.

    """
    created: set[str] = set()

    def _mark(action: a.Action) -> None:
        if action.type == a.CREATE_PAGE:
            created.add(action.payload["path"])

    before = set(session.store.state.pages)
    unsubscribe = session.store.subscribe(_mark)
    try:
        await session.runner.run_api("create_pages", config=session.config)
    finally:
        unsubscribe()

    for path in sorted(before - created):
        session.store.dispatch(a.delete_page(path))
    return len(session.store.state.pages)


async def bootstrap(config: OcelotConfig, *, collector: StoreCollector | None = None) -> Session:
    """Create a session and bring nodes and pages up to date."""
    session = create_session(config, collector=collector)
    try:
        await source_nodes(session)
        await create_pages(session)
    except BaseException:
        session.close()
        raise
    return session
