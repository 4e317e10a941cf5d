"""Content loader indirection.

Nodes may carry their content inline (``internal.content``) or leave it to
the plugin that created them, which then must provide
``load_node_content(node)``.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from ocelot._errors import MissingCapabilityError

if TYPE_CHECKING:
    from ocelot.plugins.registry import PluginRegistry


async def load_node_content(node: dict[str, Any], registry: PluginRegistry) -> str:
    """Return the content of ``node``.

    Inline content is returned as-is without consulting any plugin.
    Otherwise the owning plugin's loader is called (and awaited if it is a
    coroutine).  Calls are not deduplicated.

    Raises:
        MissingCapabilityError: If the owner is not registered or has no loader.

    """
    internal = node["internal"]
    content = internal.get("content")
    if content is not None:
        return content

    owner = internal.get("owner")
    plugin = registry.get(owner)
    if plugin is None:
        msg = f"cannot load content for node {node['id']!r}: plugin {owner!r} is not registered"
        raise MissingCapabilityError(msg)

    loader = plugin.hook("load_node_content")
    if loader is None:
        msg = f"Could not find function load_node_content for plugin {plugin.name!r}"
        raise MissingCapabilityError(msg)

    result = loader(node)
    if inspect.isawaitable(result):
        result = await result
    return result
