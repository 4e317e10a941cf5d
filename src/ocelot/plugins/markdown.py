"""transformer-markdown — derives ``MarkdownPage`` nodes from markdown files.

For every ``File`` node with a markdown extension, the file content is
loaded through the owning plugin's loader, YAML frontmatter is split off,
the body is rendered to HTML with Patitas, and a child ``MarkdownPage``
node is created.  ``create_pages`` then registers one page per
``MarkdownPage``.

Options:
    component: Component name recorded on created pages
        (default ``"markdown-page"``).
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

import yaml

from ocelot._errors import ContentError
from ocelot.store.digest import content_digest

if TYPE_CHECKING:
    from ocelot.plugins.runner import PluginApi

NAME = "transformer-markdown"
NODE_TYPE = "MarkdownPage"
MARKDOWN_EXTENSIONS = frozenset({"md", "markdown"})

_FRONTMATTER_OPEN = re.compile(r"\A---[ \t]*\r?\n")
_FRONTMATTER_CLOSE = re.compile(r"^---[ \t]*\r?$", re.MULTILINE)

_renderer: Any = None


def split_frontmatter(source: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from markdown source.

    Frontmatter is delimited by ``---`` on its own line at the start of the
    file.  Without valid delimiters the whole source is the body.

    Raises:
        ContentError: If the frontmatter is not valid YAML.

    """
    opening = _FRONTMATTER_OPEN.match(source)
    if opening is None:
        return {}, source
    closing = _FRONTMATTER_CLOSE.search(source, opening.end())
    if closing is None:
        return {}, source
    raw = source[opening.end():closing.start()]
    body = source[closing.end():].lstrip("\r\n")
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        msg = f"invalid frontmatter: {exc}"
        raise ContentError(msg) from exc
    return (to_json_native(data) if isinstance(data, dict) else {}), body


def to_json_native(value: Any) -> Any:
    """Turn YAML dates into ISO strings and mapping keys into strings.

    YAML timestamps load as ``date``/``datetime``; stored as-is they would
    come back from the snapshot as strings.  Other non-JSON values (sets,
    binary) are left for node validation to reject.

    """
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {_json_key(k): to_json_native(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_json_native(v) for v in value]
    return value


def _json_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, date):
        return key.isoformat()
    return str(key)


def render_markdown(body: str) -> str:
    """Render a markdown body to HTML."""
    global _renderer  # noqa: PLW0603
    if _renderer is None:
        from patitas import Markdown

        _renderer = Markdown(plugins=["table"])
    return _renderer(body)


def slug_for(relative_path: str) -> str:
    """URL path for a markdown file (``blog/post.md`` -> ``/blog/post/``).

    ``index`` and ``_index`` files map to their directory.

    """
    path = PurePosixPath(relative_path).with_suffix("")
    if path.name in ("index", "_index"):
        path = path.parent
    text = path.as_posix().strip("/")
    if text in ("", "."):
        return "/"
    return f"/{text}/"


def is_markdown_file(node: dict[str, Any]) -> bool:
    return node["internal"].get("type") == "File" and node.get("extension") in MARKDOWN_EXTENSIONS


async def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
    if not is_markdown_file(node):
        return

    source = await api.load_node_content(node)
    try:
        frontmatter, body = split_frontmatter(source)
    except ContentError as exc:
        msg = f"{node.get('relativePath', node['id'])}: {exc}"
        raise ContentError(msg) from exc

    slug = slug_for(node["relativePath"])
    api.create_node({
        "id": f"markdown:{node['relativePath']}",
        "parent": node["id"],
        "children": [],
        "slug": slug,
        "frontmatter": frontmatter,
        "rawBody": body,
        "html": render_markdown(body),
        "internal": {
            "type": NODE_TYPE,
            "owner": api.plugin_name,
            "contentDigest": content_digest(source),
            "content": body,
        },
    })


def create_pages(api: PluginApi, **_: Any) -> int:
    component = api.options.get("component", "markdown-page")
    count = 0
    for node in api.get_nodes_by_type(NODE_TYPE):
        path = node["frontmatter"].get("path") or node["slug"]
        api.create_page(path, component, {"node_ids": [node["id"]], "slug": node["slug"]})
        count += 1
    return count
