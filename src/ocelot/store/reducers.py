"""Reducers — pure functions from (state slice, action) to a new slice.

Reducers never mutate their inputs.  When an action does not concern a
slice, the slice is returned unchanged (same object), which lets callers
detect "nothing changed" with an identity check.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ocelot.store import actions as a
from ocelot.store.state import StoreState


def _descendants(nodes: dict[str, dict[str, Any]], roots: set[str]) -> set[str]:
    """Return ``roots`` plus every node whose parent chain reaches one of them."""
    found = set(roots)
    changed = True
    while changed:
        changed = False
        for node_id, node in nodes.items():
            if node_id not in found and node.get("parent") in found:
                found.add(node_id)
                changed = True
    return found


def nodes_reducer(nodes: dict[str, dict[str, Any]], action: a.Action) -> dict[str, dict[str, Any]]:
    if action.type == a.CREATE_NODE:
        node = action.payload
        result = {**nodes, node["id"]: node}
        parent_id = node.get("parent")
        parent = result.get(parent_id) if parent_id else None
        if parent is not None and node["id"] not in (parent.get("children") or []):
            result[parent_id] = {**parent, "children": [*(parent.get("children") or []), node["id"]]}
        return result

    if action.type == a.ADD_FIELD_TO_NODE:
        node = nodes.get(action.payload["id"])
        if node is None:
            return nodes
        fields = {**(node.get("fields") or {}), action.payload["name"]: action.payload["value"]}
        return {**nodes, node["id"]: {**node, "fields": fields}}

    if action.type in (a.DELETE_NODE, a.DELETE_NODES):
        doomed_nodes = [action.payload] if action.type == a.DELETE_NODE else action.payload
        ids = {node["id"] for node in doomed_nodes} & nodes.keys()
        if not ids:
            return nodes
        doomed = _descendants(nodes, ids)
        result = {k: v for k, v in nodes.items() if k not in doomed}
        # Drop dangling child references on surviving parents
        for node_id, node in result.items():
            children = node.get("children") or []
            if any(c in doomed for c in children):
                result[node_id] = {**node, "children": [c for c in children if c not in doomed]}
        return result

    return nodes


def status_reducer(status: dict[str, Any], action: a.Action) -> dict[str, Any]:
    if action.type != a.SET_PLUGIN_STATUS or action.plugin is None:
        return status
    plugins = status.get("plugins") or {}
    merged = {**(plugins.get(action.plugin) or {}), **action.payload}
    return {**status, "plugins": {**plugins, action.plugin: merged}}


def dependencies_reducer(
    deps: dict[str, frozenset[str]], action: a.Action
) -> dict[str, frozenset[str]]:
    if action.type == a.CREATE_COMPONENT_DEPENDENCY:
        path = action.payload["path"]
        node_id = action.payload["nodeId"]
        current = deps.get(path, frozenset())
        if node_id in current:
            return deps
        return {**deps, path: current | {node_id}}

    if action.type in (a.DELETE_COMPONENT_DEPENDENCIES, a.DELETE_PAGE):
        paths = set(action.payload) if action.type == a.DELETE_COMPONENT_DEPENDENCIES else {action.payload}
        if not paths & deps.keys():
            return deps
        return {k: v for k, v in deps.items() if k not in paths}

    return deps


def pages_reducer(pages: dict[str, dict[str, Any]], action: a.Action) -> dict[str, dict[str, Any]]:
    if action.type == a.CREATE_PAGE:
        return {**pages, action.payload["path"]: action.payload}
    if action.type == a.DELETE_PAGE:
        if action.payload not in pages:
            return pages
        return {k: v for k, v in pages.items() if k != action.payload}
    return pages


def root_reducer(state: StoreState, action: a.Action) -> StoreState:
    """Apply ``action`` to every slice and return the next state."""
    return replace(
        state,
        nodes=nodes_reducer(state.nodes, action),
        status=status_reducer(state.status, action),
        component_data_dependencies=dependencies_reducer(state.component_data_dependencies, action),
        pages=pages_reducer(state.pages, action),
        last_action=action,
    )
