"""source-filesystem — one ``File`` node per file in the content directory.

File nodes do not carry their content inline; ``load_node_content`` reads
it from disk on demand.  Unchanged files (same byte digest as the cached
node) are touched instead of re-created, so their children survive the
stale-node sweep without re-running transformers.

Options:
    path: Directory to source, relative to the site root.  Defaults to the
        configured ``content_dir``.
"""

from __future__ import annotations

import hashlib
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.plugins.runner import PluginApi

NAME = "source-filesystem"
NODE_TYPE = "File"


def file_node_id(relative_path: str) -> str:
    return f"file:{relative_path}"


def source_directory(api: PluginApi, config: OcelotConfig) -> Path:
    configured = api.options.get("path")
    path = Path(configured) if configured else Path(config.content_dir)
    return path if path.is_absolute() else config.root / path


def _iter_files(directory: Path):
    for path in sorted(directory.rglob("*")):
        rel_parts = path.relative_to(directory).parts
        if any(part.startswith(".") for part in rel_parts):
            continue
        if path.is_file():
            yield path


def build_file_node(path: Path, directory: Path, owner: str) -> dict[str, Any]:
    """Describe ``path`` as a File node (content not inlined)."""
    data = path.read_bytes()
    stat = path.stat()
    relative = path.relative_to(directory).as_posix()
    media_type, _ = mimetypes.guess_type(path.name)
    return {
        "id": file_node_id(relative),
        "parent": None,
        "children": [],
        "relativePath": relative,
        "absolutePath": str(path),
        "name": path.stem,
        "extension": path.suffix.lstrip(".").lower(),
        "size": len(data),
        "modifiedTime": stat.st_mtime,
        "internal": {
            "type": NODE_TYPE,
            "owner": owner,
            "contentDigest": hashlib.sha256(data).hexdigest(),
            "mediaType": media_type or "application/octet-stream",
        },
    }


def sync_file(api: PluginApi, path: Path, directory: Path) -> bool:
    """Create or touch the node for one file.

    Returns:
        True if the node was (re)created, False if it was only touched.

    """
    node = build_file_node(path, directory, api.plugin_name)
    if api.has_node_changed(node["id"], node["internal"]["contentDigest"]):
        api.create_node(node)
        return True
    api.touch_node(node["id"])
    return False


def remove_file(api: PluginApi, path: Path, directory: Path) -> bool:
    """Delete the node for a removed file.  Returns False if none existed."""
    node = api.get_node(file_node_id(path.relative_to(directory).as_posix()))
    if node is None:
        return False
    api.delete_node(node)
    return True


def source_nodes(api: PluginApi, config: OcelotConfig, **_: Any) -> int:
    """Create File nodes for every file under the source directory.

    Returns:
        Number of nodes created or re-created.

    """
    directory = source_directory(api, config)
    if not directory.is_dir():
        return 0
    created = 0
    for path in _iter_files(directory):
        if sync_file(api, path, directory):
            created += 1
    api.set_status({"lastSourced": len(api.get_nodes_by_type(NODE_TYPE))})
    return created


def load_node_content(node: dict[str, Any]) -> str:
    return Path(node["absolutePath"]).read_text(encoding="utf-8")
