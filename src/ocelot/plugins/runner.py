"""Plugin API runner — turns store events into plugin hook calls.

Flow:
    1. The store commits an action and emits it.
    2. The runner's emitter handler maps the action type to a hook name
       (``CREATE_NODE`` -> ``on_create_node``, ...) and queues a job.
    3. ``flush()`` drains the queue in dispatch order.  For each job, every
       plugin implementing the hook is awaited in registration order, one
       at a time, exactly once.
    4. Actions dispatched by hooks are queued behind the current job.

Hooks are called as ``hook(api, **args)`` where ``api`` is a ``PluginApi``
bound to the calling plugin.  Hooks may be plain functions or coroutines.

Hooks must not call ``flush()`` themselves: the drain holds a lock for
its whole run.
"""

from __future__ import annotations

import asyncio
import inspect
import sys
import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ocelot._errors import PluginError
from ocelot.store import actions as a
from ocelot.store.content import load_node_content
from ocelot.store.dependencies import PageDependencyTracker
from ocelot.store.digest import content_digest

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.plugins.registry import Plugin, PluginRegistry
    from ocelot.store.store import Store


def _node_args(store: Store, action: a.Action) -> dict[str, Any]:
    return {"node": action.payload}


def _updated_node_args(store: Store, action: a.Action) -> dict[str, Any]:
    return {
        "node": store.get_node(action.payload["id"]),
        "field": action.payload["name"],
        "value": action.payload["value"],
    }


def _deleted_nodes_args(store: Store, action: a.Action) -> dict[str, Any]:
    return {"nodes": list(action.payload)}


def _page_args(store: Store, action: a.Action) -> dict[str, Any]:
    return {"page": action.payload}


# Action type -> (hook name, args builder).  Args are captured when the
# event fires, i.e. against the state the action produced.
ACTION_HOOKS: dict[str, tuple[str, Callable[[Store, a.Action], dict[str, Any]]]] = {
    a.CREATE_NODE: ("on_create_node", _node_args),
    a.ADD_FIELD_TO_NODE: ("on_update_node", _updated_node_args),
    a.DELETE_NODE: ("on_delete_node", _node_args),
    a.DELETE_NODES: ("on_delete_nodes", _deleted_nodes_args),
    a.CREATE_PAGE: ("on_create_page", _page_args),
}


@dataclass(frozen=True, slots=True)
class HookJob:
    """A queued hook invocation for one emitted action.

    Attributes:
        action: The emitted action.
        hook: Hook name to call on every plugin implementing it.
        args: Keyword arguments for the hook.

    """

    action: a.Action
    hook: str
    args: dict[str, Any] = field(compare=False, hash=False)


class PluginApi:
    """What a plugin hook may do: read the store and dispatch actions.

    Action helpers fill in ``plugin=`` so ownership checks apply.

    Args:
        store: The node store.
        runner: The runner invoking the hook (for content loading).
        plugin: The plugin the API is bound to.

    """

    __slots__ = ("_plugin", "_runner", "_store")

    def __init__(self, store: Store, runner: ApiRunner, plugin: Plugin) -> None:
        self._store = store
        self._runner = runner
        self._plugin = plugin

    @property
    def plugin_name(self) -> str:
        return self._plugin.name

    @property
    def options(self) -> dict[str, Any]:
        """Options configured for this plugin."""
        return self._plugin.options

    @property
    def store(self) -> Store:
        return self._store

    @property
    def dependencies(self) -> PageDependencyTracker:
        return self._runner.dependencies

    # ----- Reads -----

    def get_node(self, node_id: str) -> dict[str, Any] | None:
        return self._store.get_node(node_id)

    def get_nodes(self) -> list[dict[str, Any]]:
        return self._store.get_nodes()

    def get_nodes_by_type(self, node_type: str) -> list[dict[str, Any]]:
        return self._store.get_nodes_by_type(node_type)

    def has_node_changed(self, node_id: str, digest: str) -> bool:
        return self._store.has_node_changed(node_id, digest)

    def get_owner_node_id(self, value: object) -> str | None:
        return self._store.get_owner_node_id(value)

    def get_status(self) -> dict[str, Any]:
        """This plugin's persisted status."""
        plugins = self._store.state.status.get("plugins") or {}
        return dict(plugins.get(self._plugin.name) or {})

    def create_content_digest(self, value: object) -> str:
        return content_digest(value)

    async def load_node_content(self, node: dict[str, Any]) -> str:
        return await load_node_content(node, self._runner.registry)

    # ----- Actions -----

    def create_node(self, node: dict[str, Any]) -> a.Action:
        existing = self._store.get_node(node.get("id")) if isinstance(node.get("id"), str) else None
        return self._store.dispatch(
            a.create_node(node, plugin=self._plugin.name, existing=existing)
        )

    def touch_node(self, node_id: str) -> a.Action:
        return self._store.dispatch(a.touch_node(node_id, plugin=self._plugin.name))

    def create_node_field(self, node: dict[str, Any], name: str, value: Any) -> a.Action:
        return self._store.dispatch(
            a.create_node_field(node, name, value, plugin=self._plugin.name)
        )

    def delete_node(self, node: dict[str, Any]) -> a.Action:
        return self._store.dispatch(a.delete_node(node, plugin=self._plugin.name))

    def create_page(
        self, path: str, component: str, context: dict[str, Any] | None = None
    ) -> a.Action:
        return self._store.dispatch(
            a.create_page(path, component, context, plugin=self._plugin.name)
        )

    def delete_page(self, path: str) -> a.Action:
        return self._store.dispatch(a.delete_page(path, plugin=self._plugin.name))

    def set_status(self, status: dict[str, Any]) -> a.Action:
        return self._store.dispatch(a.set_plugin_status(status, plugin=self._plugin.name))


class ApiRunner:
    """Drives plugin hooks from store events and build lifecycle calls.

    Args:
        store: The node store to listen to.
        registry: Registered plugins, in invocation order.

    """

    def __init__(self, store: Store, registry: PluginRegistry) -> None:
        self._store = store
        self._registry = registry
        self._dependencies = PageDependencyTracker(store)
        self._queue: deque[HookJob] = deque()
        self._lock = asyncio.Lock()
        self._wakeup: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._unsubscribers = [
            store.emitter.on(action_type, self._on_action) for action_type in ACTION_HOOKS
        ]

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def dependencies(self) -> PageDependencyTracker:
        return self._dependencies

    @property
    def pending(self) -> int:
        """Number of queued, not yet handled action jobs."""
        return len(self._queue)

    def api_for(self, plugin: Plugin) -> PluginApi:
        return PluginApi(self._store, self, plugin)

    def detach(self) -> None:
        """Stop listening to the store."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_action(self, action: a.Action) -> None:
        hook, build_args = ACTION_HOOKS[action.type]
        self._queue.append(HookJob(action=action, hook=hook, args=build_args(self._store, action)))
        if self._wakeup is not None:
            self._wakeup.set()

    async def flush(self) -> int:
        """Run queued hooks until the queue is empty.

        Returns:
            Number of action jobs handled.

        Raises:
            PluginError: If a hook raised.  Jobs behind it stay queued.

        """
        handled = 0
        async with self._lock:
            while self._queue:
                job = self._queue.popleft()
                for plugin in self._registry.with_hook(job.hook):
                    await self._invoke(plugin, job.hook, job.args, action_type=job.action.type)
                handled += 1
        return handled

    async def run_api(self, hook_name: str, *, flush: bool = True, **args: Any) -> list[Any]:
        """Call ``hook_name`` on every plugin implementing it, in order.

        Args:
            hook_name: Lifecycle hook (e.g. ``source_nodes``, ``on_post_build``).
            flush: Drain action hooks queued by the calls before returning.
            **args: Keyword arguments passed to each hook.

        Returns:
            Each plugin's return value, in invocation order.

        """
        results: list[Any] = []
        for plugin in self._registry.with_hook(hook_name):
            results.append(await self._invoke(plugin, hook_name, args))
        if flush:
            await self.flush()
        return results

    async def _invoke(
        self,
        plugin: Plugin,
        hook_name: str,
        args: dict[str, Any],
        *,
        action_type: str | None = None,
    ) -> Any:
        func = plugin.hook(hook_name)
        assert func is not None
        t0 = time.perf_counter()
        try:
            result = func(self.api_for(plugin), **args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._store.collector.record_hook(
                plugin.name, hook_name, action_type=action_type,
                duration_ms=(time.perf_counter() - t0) * 1000, ok=False,
            )
            msg = f"plugin {plugin.name!r} failed in {hook_name}: {exc}"
            raise PluginError(msg) from exc
        self._store.collector.record_hook(
            plugin.name, hook_name, action_type=action_type,
            duration_ms=(time.perf_counter() - t0) * 1000,
        )
        return result

    # ----- Background mode (develop) -----

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Drain the queue in a background task whenever actions arrive.

        Must be called from inside a running event loop.

        """
        if self.is_running:
            return
        self._wakeup = asyncio.Event()
        if self._queue:
            self._wakeup.set()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the background task, leaving unhandled jobs queued."""
        task, self._task = self._task, None
        self._wakeup = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        assert self._wakeup is not None
        wakeup = self._wakeup
        while True:
            await wakeup.wait()
            wakeup.clear()
            try:
                await self.flush()
            except PluginError as exc:
                print(f"  {exc}", file=sys.stderr)
                # The failed job is gone; keep draining the ones behind it.
                if self._queue:
                    wakeup.set()
