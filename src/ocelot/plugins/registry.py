"""Plugin registry — resolves configured plugins and exposes their capabilities.

A plugin is any module (or object) with optional, well-known attributes:

``load_node_content(node)``
    Returns the content of a node the plugin owns that carries no inline
    ``internal.content``.
``source_nodes(api, **args)``, ``create_pages(api, **args)``, ``on_post_build(api, **args)``
    Build lifecycle hooks run by ``ApiRunner.run_api``.
``on_create_node``, ``on_update_node``, ``on_delete_node``, ``on_delete_nodes``, ``on_create_page``
    Action hooks run by ``ApiRunner`` when the matching action is emitted.

All of these may be plain functions or coroutines.  Plugins are looked up
by name; a missing capability is ``None`` here and becomes a typed error at
the point of use.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ocelot._errors import PluginError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ocelot._types import HookFunc
    from ocelot.config import PluginSpec

HOOK_NAMES = frozenset({
    "load_node_content",
    "source_nodes",
    "create_pages",
    "on_post_build",
    "on_create_node",
    "on_update_node",
    "on_delete_node",
    "on_delete_nodes",
    "on_create_page",
})


@dataclass(frozen=True, slots=True)
class Plugin:
    """A registered plugin.

    Attributes:
        name: Registry key; matches ``internal.owner`` of nodes it creates.
        module: Module or object providing the hook functions.
        options: Options from the site configuration.
        resolve: Where the module was loaded from (for messages).

    """

    name: str
    module: Any = field(compare=False)
    options: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    resolve: str = ""

    def hook(self, hook_name: str) -> HookFunc | None:
        """Return the plugin's ``hook_name`` function, or None if absent."""
        func = getattr(self.module, hook_name, None)
        return func if callable(func) else None

    def has_hook(self, hook_name: str) -> bool:
        return self.hook(hook_name) is not None

    @property
    def hooks(self) -> frozenset[str]:
        """Names of the well-known hooks this plugin implements."""
        return frozenset(name for name in HOOK_NAMES if self.has_hook(name))


def resolve_module(resolve: str, root: Path) -> Any:
    """Import a plugin module from a dotted path or a ``.py`` file.

    File paths are taken relative to ``root`` (the site directory).

    Raises:
        PluginError: If the module cannot be found or fails to import.

    """
    if resolve.endswith(".py"):
        py_file = Path(resolve)
        if not py_file.is_absolute():
            py_file = root / py_file
        if not py_file.is_file():
            msg = f"plugin {resolve!r}: {py_file} not found"
            raise PluginError(msg)
        module_name = f"ocelot_plugin_{py_file.stem.replace('-', '_')}"
        spec = importlib.util.spec_from_file_location(module_name, py_file)
        if spec is None or spec.loader is None:
            msg = f"plugin {resolve!r}: failed to load {py_file}"
            raise PluginError(msg)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            msg = f"plugin {resolve!r}: import failed: {exc}"
            raise PluginError(msg) from exc
        return module

    try:
        return importlib.import_module(resolve)
    except ImportError as exc:
        msg = f"plugin {resolve!r} could not be imported: {exc}"
        raise PluginError(msg) from exc


class PluginRegistry:
    """Ordered, name-keyed collection of plugins.

    Iteration order is registration order, which is also the order hooks
    run in for every action.

    """

    def __init__(self, plugins: Iterable[Plugin] = ()) -> None:
        self._plugins: dict[str, Plugin] = {}
        for plugin in plugins:
            self.register(plugin)

    @classmethod
    def from_specs(cls, specs: Iterable[PluginSpec], root: Path) -> PluginRegistry:
        """Resolve and register configured plugins in order."""
        registry = cls()
        for spec in specs:
            module = resolve_module(spec.resolve, root)
            registry.register(
                Plugin(name=spec.name, module=module, options=dict(spec.options), resolve=spec.resolve)
            )
        return registry

    def register(self, plugin: Plugin) -> Plugin:
        """Add a plugin.

        Raises:
            PluginError: If a plugin with the same name is already registered.

        """
        if plugin.name in self._plugins:
            msg = f"plugin {plugin.name!r} is already registered"
            raise PluginError(msg)
        self._plugins[plugin.name] = plugin
        return plugin

    def get(self, name: str | None) -> Plugin | None:
        """Return the plugin called ``name``, or None."""
        if name is None:
            return None
        return self._plugins.get(name)

    def with_hook(self, hook_name: str) -> list[Plugin]:
        """Plugins implementing ``hook_name``, in registration order."""
        return [p for p in self._plugins.values() if p.has_hook(hook_name)]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[Plugin]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)
