"""Shared test fixtures for ocelot."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from ocelot.config import OcelotConfig
from ocelot.store.digest import content_digest


@pytest.fixture
def tmp_site(tmp_path: Path) -> Path:
    """Create a minimal site structure for testing.

    Returns the path to the site root with a content/ directory holding two
    markdown files and a non-markdown asset.
    """
    content = tmp_path / "content"
    content.mkdir()
    (content / "_index.md").write_text(
        "---\ntitle: Home\n---\n\n# Welcome\n\nThis is the home page.\n"
    )

    blog = content / "blog"
    blog.mkdir()
    (blog / "post.md").write_text(
        "---\ntitle: First Post\ntags: [intro]\n---\n\n# First Post\n\nHello world.\n"
    )

    (content / "logo.txt").write_text("not markdown\n")
    return tmp_path


@pytest.fixture
def site_config(tmp_site: Path) -> OcelotConfig:
    """An OcelotConfig for ``tmp_site`` with snapshot saves made immediate."""
    return OcelotConfig(root=tmp_site, save_debounce=0.0, devtools=False)


def make_node(
    node_id: str,
    *,
    owner: str = "plugin-a",
    node_type: str = "Test",
    content: str | None = None,
    parent: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build a valid node dict for unit tests."""
    internal: dict[str, Any] = {
        "type": node_type,
        "owner": owner,
        "contentDigest": content_digest(node_id),
    }
    if content is not None:
        internal["content"] = content
    return {"id": node_id, "parent": parent, "children": [], "internal": internal, **fields}
