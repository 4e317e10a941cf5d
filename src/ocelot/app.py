"""Ocelot application entry points.

The three public functions (build, develop, nodes) load the site
configuration and hand off to the build orchestration.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any

from ocelot.config_loader import load_config


def build(root: str | Path = ".", **kwargs: object) -> Any:
    """Source every plugin, create pages, and export page data.

    Args:
        root: Path to the site root directory.
        **kwargs: Override OcelotConfig fields.

    Returns:
        The ``BuildResult``.

    Raises:
        BuildError: If a build phase fails.

    """
    from ocelot.banner import print_banner
    from ocelot.build.pipeline import build_site

    config = load_config(Path(root), **kwargs)
    result = asyncio.run(build_site(config))

    print_banner(
        config,
        node_count=result.node_count,
        page_count=result.page_count,
        mode="build",
    )
    _print_build_summary(result)
    return result


def _print_build_summary(result: Any) -> None:
    """Print build completion summary to stderr."""
    from ocelot.build.pipeline import BuildResult
    from ocelot.observability.events import BuildPhase

    if not isinstance(result, BuildResult):
        return

    lines = ["─" * 41]
    for event in reversed(result.log.query(event_type=BuildPhase)):
        lines.append(f"  {event.phase:<11} {event.duration_ms:>7.0f}ms")
    lines.append(f"  Wrote {result.export.total_pages} page-data file"
                 f"{'s' if result.export.total_pages != 1 else ''}")
    if result.stale_count:
        lines.append(f"  Removed {result.stale_count} stale node"
                     f"{'s' if result.stale_count != 1 else ''}")
    lines.append(f"  Output: {result.export.output_dir}")
    lines.append(f"  Done in {result.duration_ms:.0f}ms")

    print("\n".join(lines), file=sys.stderr)


def develop(root: str | Path = ".", **kwargs: object) -> None:
    """Build, then watch the content directory and rebuild incrementally.

    Runs until interrupted.

    Args:
        root: Path to the site root directory.
        **kwargs: Override OcelotConfig fields.

    """
    from ocelot.build.develop import develop_site

    config = load_config(Path(root), **kwargs)
    try:
        asyncio.run(develop_site(config))
    except KeyboardInterrupt:
        print("\n  Stopped.", file=sys.stderr)


def nodes(root: str | Path = ".", node_type: str | None = None, **kwargs: object) -> list[dict]:
    """Return the nodes cached in the site's store snapshot.

    Reads the snapshot only; no plugin runs and nothing is written.

    Args:
        root: Path to the site root directory.
        node_type: Only return nodes whose ``internal.type`` matches.
        **kwargs: Override OcelotConfig fields.

    """
    from ocelot.store.persistence import SnapshotStore
    from ocelot.store.state import StoreState

    config = load_config(Path(root), **kwargs)
    data = SnapshotStore(config.snapshot_path).load()
    state = StoreState.from_snapshot(data) if data is not None else StoreState()
    found = [
        node for node in state.nodes.values()
        if node_type is None or node["internal"].get("type") == node_type
    ]
    return sorted(found, key=lambda node: node["id"])
