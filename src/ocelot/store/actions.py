"""Actions — the only way to change store state.

Each action is a frozen ``Action`` carrying a type name, a payload and the
name of the plugin that produced it.  Action creators validate their input
before anything reaches the reducers, so a malformed node is rejected at
the call site and never half-applies.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ocelot._errors import NodeValidationError
from ocelot.observability.events import now_ns

CREATE_NODE = "CREATE_NODE"
TOUCH_NODE = "TOUCH_NODE"
ADD_FIELD_TO_NODE = "ADD_FIELD_TO_NODE"
DELETE_NODE = "DELETE_NODE"
DELETE_NODES = "DELETE_NODES"
CREATE_PAGE = "CREATE_PAGE"
DELETE_PAGE = "DELETE_PAGE"
CREATE_COMPONENT_DEPENDENCY = "CREATE_COMPONENT_DEPENDENCY"
DELETE_COMPONENT_DEPENDENCIES = "DELETE_COMPONENT_DEPENDENCIES"
SET_PLUGIN_STATUS = "SET_PLUGIN_STATUS"

_REQUIRED_INTERNAL = ("contentDigest", "owner")


@dataclass(frozen=True, slots=True)
class Action:
    """A dispatched state transition.

    Attributes:
        type: Action type; also the name of the emitted event.
        payload: Action-specific data (a node, an id, a page, ...).
        plugin: Name of the plugin that created the action, if any.
        timestamp_ns: Monotonic creation time.

    """

    type: str
    payload: Any = None
    plugin: str | None = None
    timestamp_ns: int = field(default_factory=now_ns, compare=False)


def check_json_value(value: Any, where: str) -> None:
    """Reject values that would not come back unchanged from a JSON snapshot.

    Only ``None``, ``bool``, ``int``, ``float``, ``str``, and ``list`` /
    ``dict`` (string keys) built from them are accepted.

    Raises:
        NodeValidationError: Naming the location of the first bad value.

    """
    _check_json(value, where, set())


def _check_json(value: Any, where: str, active: set[int]) -> None:
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if not isinstance(value, (dict, list)):
        msg = f"{where}: {type(value).__name__} values cannot be stored, use JSON types"
        raise NodeValidationError(msg)
    if id(value) in active:
        msg = f"{where}: reference cycle"
        raise NodeValidationError(msg)
    active.add(id(value))
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                msg = f"{where}: key {key!r} is not a string"
                raise NodeValidationError(msg)
            _check_json(item, f"{where}.{key}", active)
    else:
        for index, item in enumerate(value):
            _check_json(item, f"{where}[{index}]", active)
    active.discard(id(value))


def validate_node(node: Mapping[str, Any]) -> None:
    """Reject nodes missing ``id`` or required ``internal`` metadata.

    Every field value must also be JSON-native (see ``check_json_value``) so
    a node restored from the snapshot equals the node that was saved.

    Raises:
        NodeValidationError: Describing the first problem found.

    """
    if not isinstance(node, Mapping):
        msg = f"node must be a mapping, got {type(node).__name__}"
        raise NodeValidationError(msg)
    node_id = node.get("id")
    if not isinstance(node_id, str) or not node_id:
        msg = f"node is missing a string 'id': {node!r:.80}"
        raise NodeValidationError(msg)
    internal = node.get("internal")
    if not isinstance(internal, Mapping):
        msg = f"node {node_id!r} is missing its 'internal' block"
        raise NodeValidationError(msg)
    for key in _REQUIRED_INTERNAL:
        if not internal.get(key):
            msg = f"node {node_id!r}: internal.{key} is required"
            raise NodeValidationError(msg)
    node_type = internal.get("type")
    if node_type is not None and (not isinstance(node_type, str) or not node_type):
        msg = f"node {node_id!r}: internal.type must be a non-empty string"
        raise NodeValidationError(msg)
    content = internal.get("content")
    if content is not None and not isinstance(content, str):
        msg = f"node {node_id!r}: internal.content must be a string"
        raise NodeValidationError(msg)
    for key, value in node.items():
        if key == "internal":
            value = dict(value)
        check_json_value(value, f"node {node_id!r}: {key}")


def create_node(
    node: Mapping[str, Any],
    *,
    plugin: str | None = None,
    existing: Mapping[str, Any] | None = None,
) -> Action:
    """Create (or replace) a node.

    Args:
        node: The node; ``parent`` defaults to None and ``children`` to ``[]``.
        plugin: Dispatching plugin.  When given, ``internal.owner`` must match it.
        existing: The node currently stored under the same id, if any.  A
            node owned by another plugin cannot be replaced.

    """
    validate_node(node)
    owner = node["internal"]["owner"]
    if plugin is not None and owner != plugin:
        msg = f"plugin {plugin!r} cannot create node {node['id']!r} owned by {owner!r}"
        raise NodeValidationError(msg)
    if existing is not None and existing["internal"]["owner"] != owner:
        msg = (
            f"node {node['id']!r} is owned by {existing['internal']['owner']!r} "
            f"and cannot be replaced by {owner!r}"
        )
        raise NodeValidationError(msg)

    payload = dict(node)
    payload["internal"] = dict(node["internal"])
    payload.setdefault("parent", None)
    payload.setdefault("children", [])
    return Action(CREATE_NODE, payload, plugin)


def touch_node(node_id: str, *, plugin: str | None = None) -> Action:
    """Mark a node as still produced by its plugin during this sourcing run."""
    return Action(TOUCH_NODE, node_id, plugin)


def create_node_field(
    node: Mapping[str, Any],
    name: str,
    value: Any,
    *,
    plugin: str | None = None,
) -> Action:
    """Add ``fields[name] = value`` to a node (the node update action).

    Fields are namespaced under ``fields`` so plugins extending nodes they do
    not own cannot clobber the owner's data.

    """
    validate_node(node)
    if not name or "." in name:
        msg = f"invalid field name {name!r} for node {node['id']!r}"
        raise NodeValidationError(msg)
    fields = node.get("fields") or {}
    if name in fields:
        msg = f"node {node['id']!r} already has field {name!r}"
        raise NodeValidationError(msg)
    check_json_value(value, f"node {node['id']!r}: fields.{name}")
    return Action(
        ADD_FIELD_TO_NODE,
        {"id": node["id"], "name": name, "value": value},
        plugin,
    )


def delete_node(node: Mapping[str, Any], *, plugin: str | None = None) -> Action:
    """Delete a single node.

    The payload carries the node itself so delete hooks still see its data
    after it has left the store.  Descendants (nodes whose ``parent`` chain
    leads to it) are removed with it.

    """
    validate_node(node)
    return Action(DELETE_NODE, dict(node), plugin)


def delete_nodes(nodes: Iterable[Mapping[str, Any]], *, plugin: str | None = None) -> Action:
    """Delete several nodes in one transition."""
    payload = []
    for node in nodes:
        validate_node(node)
        payload.append(dict(node))
    return Action(DELETE_NODES, tuple(payload), plugin)


def create_page(
    path: str,
    component: str,
    context: Mapping[str, Any] | None = None,
    *,
    plugin: str | None = None,
) -> Action:
    """Register a page to be built at ``path``.

    ``context["node_ids"]`` lists the nodes whose data the page consumes.

    """
    if not path.startswith("/"):
        msg = f"page path must start with '/': {path!r}"
        raise NodeValidationError(msg)
    inner = path.strip("/")
    if inner and any(part in ("", ".", "..") for part in inner.split("/")):
        msg = f"page path has an empty, '.' or '..' segment: {path!r}"
        raise NodeValidationError(msg)
    page = {
        "path": path,
        "component": component,
        "context": dict(context or {}),
        "pluginCreator": plugin,
    }
    return Action(CREATE_PAGE, page, plugin)


def delete_page(path: str, *, plugin: str | None = None) -> Action:
    """Remove a registered page."""
    return Action(DELETE_PAGE, path, plugin)


def create_page_dependency(path: str, node_id: str, *, plugin: str | None = None) -> Action:
    """Record that the page at ``path`` consumed node ``node_id``."""
    return Action(CREATE_COMPONENT_DEPENDENCY, {"path": path, "nodeId": node_id}, plugin)


def delete_page_dependencies(paths: Iterable[str], *, plugin: str | None = None) -> Action:
    """Forget every dependency recorded for ``paths``."""
    return Action(DELETE_COMPONENT_DEPENDENCIES, tuple(paths), plugin)


def set_plugin_status(status: Mapping[str, Any], *, plugin: str) -> Action:
    """Merge plugin-private status (persisted across runs)."""
    check_json_value(dict(status), f"status of plugin {plugin!r}")
    return Action(SET_PLUGIN_STATUS, dict(status), plugin)
