"""Develop loop — incremental rebuilds driven by the file watcher.

Each content change flows through the same machinery as a full build:
    1. The File node for the changed path is re-sourced (or deleted).
    2. Action hooks drain, so transformers update derived nodes.
    3. Pages that read any changed node are looked up in the dependency
       tracker, ``create_pages`` runs again.
    4. Page data is rewritten for affected, new and removed pages only.
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ocelot._errors import OcelotError
from ocelot.build.bootstrap import Session, bootstrap, create_pages
from ocelot.build.page_data import PageDataExporter
from ocelot.content.watcher import ContentWatcher
from ocelot.plugins import filesystem

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.content.watcher import ChangeEvent


@dataclass(frozen=True, slots=True)
class ChangeReport:
    """Outcome of handling one file change.

    Attributes:
        event: The change that was handled.
        changed_nodes: Ids of nodes created, replaced or deleted.
        pages: Page paths whose data was rewritten or removed.
        duration_ms: Time taken.

    """

    event: ChangeEvent
    changed_nodes: frozenset[str]
    pages: tuple[str, ...]
    duration_ms: float


def changed_node_ids(
    before: dict[str, dict[str, Any]], after: dict[str, dict[str, Any]]
) -> frozenset[str]:
    """Ids whose node object was replaced, added or removed."""
    changed = {node_id for node_id, node in after.items() if before.get(node_id) is not node}
    changed.update(before.keys() - after.keys())
    return frozenset(changed)


class DevelopLoop:
    """Applies watcher events to a bootstrapped session.

    Args:
        session: Session returned by ``bootstrap``.

    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._exporter = PageDataExporter(
            session.store, session.runner.dependencies, session.config.output_path
        )

    @property
    def exporter(self) -> PageDataExporter:
        return self._exporter

    async def handle_change(self, event: ChangeEvent) -> ChangeReport | None:
        """Re-source one changed file and refresh the pages that read it.

        Returns:
            The report, or None when the change is not sourced content.

        """
        if event.category == "config":
            print(f"  Config changed ({event.path.name}): restart to apply", file=sys.stderr)
            return None

        session = self._session
        plugin = session.registry.get(filesystem.NAME)
        if plugin is None:
            return None
        api = session.runner.api_for(plugin)
        directory = filesystem.source_directory(api, session.config)
        if not event.path.is_relative_to(directory):
            return None

        t0 = time.perf_counter()
        store = session.store
        nodes_before = store.state.nodes
        pages_before = set(store.state.pages)

        if event.kind == "deleted" or not event.path.is_file():
            filesystem.remove_file(api, event.path, directory)
        else:
            filesystem.sync_file(api, event.path, directory)
        await session.runner.flush()

        changed = changed_node_ids(nodes_before, store.state.nodes)
        affected = session.runner.dependencies.pages_affected_by(changed)
        await create_pages(session)
        pages_after = set(store.state.pages)

        paths = sorted(affected | (pages_after ^ pages_before))
        if paths:
            self._exporter.export(paths)

        return ChangeReport(
            event=event,
            changed_nodes=changed,
            pages=tuple(paths),
            duration_ms=(time.perf_counter() - t0) * 1000,
        )


def _print_report(report: ChangeReport) -> None:
    rel = report.event.path.name
    if not report.changed_nodes:
        print(f"  {report.event.kind} {rel}: unchanged", file=sys.stderr)
        return
    pages = ", ".join(report.pages) if report.pages else "no pages"
    print(
        f"  {report.event.kind} {rel}: {len(report.changed_nodes)} node(s) -> {pages} "
        f"({report.duration_ms:.0f}ms)",
        file=sys.stderr,
    )


async def develop_site(config: OcelotConfig) -> None:
    """Bootstrap, export all page data, then rebuild on every change.

    Runs until cancelled.  Hook failures during a change are reported and
    the loop keeps going.

    """
    from ocelot.banner import print_banner

    t0 = time.perf_counter()
    session = await bootstrap(config)
    try:
        loop = DevelopLoop(session)
        loop.exporter.export()
        print_banner(
            config,
            node_count=len(session.store.state.nodes),
            page_count=len(session.store.state.pages),
            mode="develop",
            load_ms=(time.perf_counter() - t0) * 1000,
        )

        session.runner.start()
        watcher = ContentWatcher(config)
        watcher.start()
        try:
            async for event in watcher.changes():
                try:
                    report = await loop.handle_change(event)
                except OcelotError as exc:
                    print(f"  Rebuild error: {exc}", file=sys.stderr)
                    continue
                if report is not None:
                    _print_report(report)
        finally:
            watcher.stop()
            await session.runner.stop()
    finally:
        session.close()
