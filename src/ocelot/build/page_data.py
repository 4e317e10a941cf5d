"""Page-data export — one JSON document per registered page.

Every node a page's data is built from is read through the dependency
tracker, so the export also (re)records which pages depend on which nodes.
A page's dependency set is reset before it is recomputed.

Layout::

    <output>/page-data/index/page-data.json          # page "/"
    <output>/page-data/blog/post/page-data.json      # page "/blog/post/"
"""

from __future__ import annotations

import json
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ocelot._errors import BuildError
from ocelot.store.persistence import json_default

if TYPE_CHECKING:
    from ocelot.store.dependencies import PageDependencyTracker
    from ocelot.store.store import Store

PAGE_DATA_DIR = "page-data"


@dataclass(frozen=True, slots=True)
class ExportedPage:
    """Record of a single page-data file.

    Attributes:
        path: Page path (e.g. ``"/blog/post/"``).
        output_path: Absolute path of the written JSON file.
        node_ids: Nodes the page data was built from.
        size_bytes: Size of the written file.
        duration_ms: Time taken to resolve and write the page.

    """

    path: str
    output_path: Path
    node_ids: tuple[str, ...]
    size_bytes: int
    duration_ms: float


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Aggregate result of a page-data export.

    Attributes:
        pages: All pages written.
        duration_ms: Total wall-clock time.
        output_dir: The ``page-data`` directory.

    """

    pages: tuple[ExportedPage, ...]
    duration_ms: float
    output_dir: Path

    @property
    def total_pages(self) -> int:
        return len(self.pages)


def page_data_path(page_path: str, output_dir: Path) -> Path:
    """Map a page path to its ``page-data.json`` file under ``output_dir``.

    Raises:
        BuildError: If the page path would escape ``output_dir``.

    """
    clean = page_path.strip("/")
    target = output_dir / (clean or "index") / "page-data.json"
    if not target.resolve().is_relative_to(output_dir.resolve()):
        msg = f"page path {page_path!r} resolves outside {output_dir}"
        raise BuildError(msg)
    return target


class PageDataExporter:
    """Writes page data for every page in the store.

    Args:
        store: The node store.
        dependencies: Tracker through which page nodes are read.
        output_root: Build output directory; ``page-data/`` is created in it.

    """

    def __init__(self, store: Store, dependencies: PageDependencyTracker, output_root: Path) -> None:
        self._store = store
        self._dependencies = dependencies
        self._output_dir = output_root / PAGE_DATA_DIR

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def export(self, paths: list[str] | None = None) -> ExportResult:
        """Write page data for ``paths`` (all pages when None).

        A full export removes stale files first; a partial one rewrites only
        the given pages.

        Raises:
            BuildError: If a page cannot be serialized or written.

        """
        start = time.perf_counter()
        if paths is None:
            self._clean_output()
            paths = sorted(page["path"] for page in self._store.get_pages())

        results: list[ExportedPage] = []
        for path in paths:
            page = self._store.get_page(path)
            if page is None:
                page_data_path(path, self._output_dir).unlink(missing_ok=True)
                continue
            results.append(self._export_page(page))

        return ExportResult(
            pages=tuple(results),
            duration_ms=(time.perf_counter() - start) * 1000,
            output_dir=self._output_dir,
        )

    def resolve(self, page: dict[str, Any]) -> dict[str, Any]:
        """Build the data document for ``page``, recording its dependencies."""
        path = page["path"]
        self._dependencies.reset_path(path)
        nodes = []
        for node_id in page["context"].get("node_ids") or ():
            node = self._dependencies.get_node_and_save_path_dependency(node_id, path)
            if node is not None:
                nodes.append(node)
        return {
            "path": path,
            "component": page["component"],
            "context": page["context"],
            "result": {"nodes": nodes},
        }

    def _export_page(self, page: dict[str, Any]) -> ExportedPage:
        t0 = time.perf_counter()
        data = self.resolve(page)
        filepath = page_data_path(page["path"], self._output_dir)
        try:
            payload = json.dumps(data, indent=2, default=json_default).encode("utf-8")
            filepath.parent.mkdir(parents=True, exist_ok=True)
            filepath.write_bytes(payload)
        except (OSError, TypeError, ValueError) as exc:
            msg = f"Failed to write page data for {page['path']!r}: {exc}"
            raise BuildError(msg) from exc
        return ExportedPage(
            path=page["path"],
            output_path=filepath,
            node_ids=tuple(node["id"] for node in data["result"]["nodes"]),
            size_bytes=len(payload),
            duration_ms=(time.perf_counter() - t0) * 1000,
        )

    def _clean_output(self) -> None:
        if self._output_dir.exists():
            shutil.rmtree(self._output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)
