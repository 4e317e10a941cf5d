"""Build pipeline — timed phases from sources to page data.

Phases run in order and each one is recorded as a ``BuildPhase`` event:

    bootstrap   restore the store, resolve plugins
    source      ``source_nodes`` + stale-node sweep
    pages       ``create_pages``
    page_data   write ``page-data.json`` for every page
    post_build  ``on_post_build``

A failing phase is recorded as failed and surfaces as ``BuildError``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from ocelot._errors import BuildError
from ocelot.build.bootstrap import Session, create_pages, create_session, source_nodes
from ocelot.build.page_data import ExportResult, PageDataExporter
from ocelot.observability.collector import StoreCollector

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ocelot.config import OcelotConfig
    from ocelot.observability.log import EventLog

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Summary of a finished build.

    Attributes:
        node_count: Nodes in the store at the end of the build.
        page_count: Pages registered.
        stale_count: Stale root nodes deleted during sourcing.
        export: Page-data export result.
        duration_ms: Total wall-clock time.
        log: Event log of the run.

    """

    node_count: int
    page_count: int
    stale_count: int
    export: ExportResult
    duration_ms: float
    log: EventLog


async def run_phase(
    collector: StoreCollector,
    phase: str,
    func: Callable[[], Awaitable[T]],
) -> T:
    """Run one phase, record its outcome, and wrap failures in ``BuildError``."""
    t0 = time.perf_counter()
    try:
        result = await func()
    except Exception as exc:
        collector.record_phase(phase, status="failed", duration_ms=(time.perf_counter() - t0) * 1000)
        if isinstance(exc, BuildError):
            raise
        msg = f"{phase} failed: {exc}"
        raise BuildError(msg) from exc
    collector.record_phase(phase, duration_ms=(time.perf_counter() - t0) * 1000)
    return result


async def build_site(config: OcelotConfig) -> BuildResult:
    """Run every build phase against ``config``'s site.

    The store is always closed at the end, which flushes the pending
    snapshot save.

    Raises:
        BuildError: If any phase fails.

    """
    start = time.perf_counter()
    collector = StoreCollector()

    async def _bootstrap() -> Session:
        return create_session(config, collector=collector)

    session = await run_phase(collector, "bootstrap", _bootstrap)
    try:
        stale = await run_phase(collector, "source", lambda: source_nodes(session))
        await run_phase(collector, "pages", lambda: create_pages(session))

        exporter = PageDataExporter(session.store, session.runner.dependencies, config.output_path)

        async def _page_data() -> ExportResult:
            return exporter.export()

        export = await run_phase(collector, "page_data", _page_data)
        await run_phase(
            collector,
            "post_build",
            lambda: session.runner.run_api("on_post_build", config=config, result=export),
        )
    finally:
        session.close()

    return BuildResult(
        node_count=len(session.store.state.nodes),
        page_count=len(session.store.state.pages),
        stale_count=stale,
        export=export,
        duration_ms=(time.perf_counter() - start) * 1000,
        log=collector.log,
    )
