"""Integration tests for ocelot.build — bootstrap, full build, develop loop."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest
import pytest_asyncio

from ocelot._errors import BuildError
from ocelot.build.bootstrap import (
    bootstrap,
    create_pages,
    create_session,
    find_stale_nodes,
    source_nodes,
)
from ocelot.build.develop import DevelopLoop, changed_node_ids
from ocelot.build.page_data import page_data_path
from ocelot.build.pipeline import build_site
from ocelot.config import OcelotConfig, PluginSpec
from ocelot.content.watcher import ChangeEvent
from ocelot.observability.events import BuildPhase
from ocelot.store import actions as a

from .conftest import make_node

_EXPECTED_NODES = [
    "file:_index.md",
    "file:blog/post.md",
    "file:logo.txt",
    "markdown:_index.md",
    "markdown:blog/post.md",
]


def _write_plugin(root: Path, name: str, source: str) -> PluginSpec:
    (root / f"{name}.py").write_text(source)
    return PluginSpec(name=name, resolve=f"{name}.py")


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------


class TestBootstrap:
    """Sourcing, stale-node sweep and page creation."""

    @pytest.mark.asyncio
    async def test_nodes_and_pages(self, site_config: OcelotConfig) -> None:
        session = await bootstrap(site_config)
        try:
            assert sorted(n["id"] for n in session.store.get_nodes()) == _EXPECTED_NODES
            assert sorted(session.store.state.pages) == ["/", "/blog/post/"]
            assert session.registry.names() == ("source-filesystem", "transformer-markdown")
        finally:
            session.close()
        assert site_config.snapshot_path.is_file()

    @pytest.mark.asyncio
    async def test_unchanged_sources_are_touched(self, site_config: OcelotConfig) -> None:
        (await bootstrap(site_config)).close()

        session = create_session(site_config)
        try:
            assert len(session.store.get_nodes()) == len(_EXPECTED_NODES)
            created: list[str] = []
            session.store.subscribe(
                lambda action: created.append(action.payload["id"])
                if action.type == a.CREATE_NODE else None
            )
            assert await source_nodes(session) == 0
            assert created == []
            assert session.store.get_node("file:blog/post.md")["children"] == [
                "markdown:blog/post.md"
            ]
        finally:
            session.close()

    @pytest.mark.asyncio
    async def test_cached_nodes_equal_fresh_nodes(
        self, site_config: OcelotConfig, tmp_site: Path
    ) -> None:
        (tmp_site / "content" / "dated.md").write_text(
            "---\ntitle: Dated\ndate: 2024-01-02\n---\n\nBody.\n"
        )
        session = await bootstrap(site_config)
        try:
            fresh = {n["id"]: n for n in session.store.get_nodes()}
        finally:
            session.close()
        assert fresh["markdown:dated.md"]["frontmatter"]["date"] == "2024-01-02"

        session = create_session(site_config)
        try:
            await source_nodes(session)
            assert {n["id"]: n for n in session.store.get_nodes()} == fresh
        finally:
            session.close()

    @pytest.mark.asyncio
    async def test_deleted_file_is_swept_with_children(
        self, site_config: OcelotConfig, tmp_site: Path
    ) -> None:
        (await bootstrap(site_config)).close()
        (tmp_site / "content" / "blog" / "post.md").unlink()

        session = create_session(site_config)
        try:
            assert await source_nodes(session) == 1
            ids = {n["id"] for n in session.store.get_nodes()}
            assert "file:blog/post.md" not in ids
            assert "markdown:blog/post.md" not in ids
            assert "markdown:_index.md" in ids
        finally:
            session.close()

    @pytest.mark.asyncio
    async def test_orphaned_owner_is_stale(self, site_config: OcelotConfig) -> None:
        session = create_session(site_config)
        try:
            session.store.dispatch(a.create_node(make_node("orphan", owner="uninstalled")))
            assert await source_nodes(session) == 1
            assert session.store.get_node("orphan") is None
        finally:
            session.close()

    def test_find_stale_nodes_skips_transformer_roots(self, site_config: OcelotConfig) -> None:
        session = create_session(site_config)
        try:
            session.store.dispatch(a.create_node(make_node("t1", owner="transformer-markdown")))
            session.store.dispatch(a.create_node(make_node("f1", owner="source-filesystem")))
            stale = find_stale_nodes(session.store, session.registry, seen=set())
            assert [n["id"] for n in stale] == ["f1"]
        finally:
            session.close()

    @pytest.mark.asyncio
    async def test_pages_not_recreated_are_deleted(
        self, site_config: OcelotConfig, tmp_site: Path
    ) -> None:
        session = await bootstrap(site_config)
        try:
            (tmp_site / "content" / "_index.md").unlink()
            await source_nodes(session)
            assert await create_pages(session) == 1
            assert sorted(session.store.state.pages) == ["/blog/post/"]
        finally:
            session.close()

    @pytest.mark.asyncio
    async def test_configured_plugin_overrides_builtin(self, tmp_site: Path) -> None:
        spec = PluginSpec(
            name="source-filesystem",
            resolve="ocelot.plugins.filesystem",
            options={"path": "content/blog"},
        )
        config = OcelotConfig(root=tmp_site, save_debounce=0.0, devtools=False, plugins=(spec,))
        session = await bootstrap(config)
        try:
            assert session.registry.names() == ("transformer-markdown", "source-filesystem")
            assert sorted(session.store.state.pages) == ["/post/"]
        finally:
            session.close()

    def test_devtools_attaches_inspector(self, site_config: OcelotConfig) -> None:
        session = create_session(replace(site_config, devtools=True))
        try:
            assert session.inspector is not None
            assert session.inspector.attached
        finally:
            session.close()
        assert not session.inspector.attached


# ---------------------------------------------------------------------------
# Full build
# ---------------------------------------------------------------------------


class TestPageDataPath:
    """page_data_path — output locations stay inside the page-data directory."""

    def test_nested_page(self, tmp_path: Path) -> None:
        expected = tmp_path / "blog" / "post" / "page-data.json"
        assert page_data_path("/blog/post/", tmp_path) == expected

    def test_root_page(self, tmp_path: Path) -> None:
        assert page_data_path("/", tmp_path) == tmp_path / "index" / "page-data.json"

    @pytest.mark.parametrize("path", ["/../x/", "/blog/../../x", "/../../../tmp/x"])
    def test_escaping_path_rejected(self, tmp_path: Path, path: str) -> None:
        with pytest.raises(BuildError, match="outside"):
            page_data_path(path, tmp_path / "page-data")


class TestBuildSite:
    """build_site — every phase through page-data export."""

    @pytest.mark.asyncio
    async def test_writes_page_data(self, site_config: OcelotConfig) -> None:
        result = await build_site(site_config)

        assert result.node_count == len(_EXPECTED_NODES)
        assert result.page_count == 2
        assert result.stale_count == 0
        assert result.export.total_pages == 2

        output_dir = site_config.output_path / "page-data"
        home = json.loads(page_data_path("/", output_dir).read_text())
        assert home["path"] == "/"
        assert home["component"] == "markdown-page"
        assert [n["id"] for n in home["result"]["nodes"]] == ["markdown:_index.md"]
        assert home["result"]["nodes"][0]["frontmatter"] == {"title": "Home"}

        post = next(p for p in result.export.pages if p.path == "/blog/post/")
        assert post.node_ids == ("markdown:blog/post.md",)
        assert post.output_path == output_dir / "blog" / "post" / "page-data.json"

    @pytest.mark.asyncio
    async def test_phases_recorded_in_order(self, site_config: OcelotConfig) -> None:
        result = await build_site(site_config)
        phases = list(reversed(result.log.query(event_type=BuildPhase)))
        assert [p.phase for p in phases] == [
            "bootstrap", "source", "pages", "page_data", "post_build",
        ]
        assert all(p.status == "ok" for p in phases)

    @pytest.mark.asyncio
    async def test_full_export_removes_stale_files(self, site_config: OcelotConfig) -> None:
        leftover = site_config.output_path / "page-data" / "gone" / "page-data.json"
        leftover.parent.mkdir(parents=True)
        leftover.write_text("{}")
        await build_site(site_config)
        assert not leftover.exists()

    @pytest.mark.asyncio
    async def test_post_build_hook_receives_result(self, tmp_site: Path) -> None:
        spec = _write_plugin(
            tmp_site,
            "report",
            "from pathlib import Path\n\n"
            "def on_post_build(api, config, result, **_):\n"
            "    (config.root / 'report.txt').write_text(str(result.total_pages))\n",
        )
        config = OcelotConfig(root=tmp_site, save_debounce=0.0, devtools=False, plugins=(spec,))
        await build_site(config)
        assert (tmp_site / "report.txt").read_text() == "2"

    @pytest.mark.asyncio
    async def test_failing_plugin_raises_build_error(self, tmp_site: Path) -> None:
        spec = _write_plugin(
            tmp_site,
            "broken",
            "def source_nodes(api, **_):\n    raise RuntimeError('remote API down')\n",
        )
        config = OcelotConfig(root=tmp_site, save_debounce=0.0, devtools=False, plugins=(spec,))
        with pytest.raises(BuildError, match="source failed: .*remote API down"):
            await build_site(config)

    @pytest.mark.asyncio
    async def test_missing_plugin_fails_bootstrap(self, tmp_site: Path) -> None:
        spec = PluginSpec(name="ghost", resolve="ghost.py")
        config = OcelotConfig(root=tmp_site, save_debounce=0.0, devtools=False, plugins=(spec,))
        with pytest.raises(BuildError, match="bootstrap failed"):
            await build_site(config)


# ---------------------------------------------------------------------------
# Develop loop
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def develop_loop(site_config: OcelotConfig):
    session = await bootstrap(site_config)
    loop = DevelopLoop(session)
    loop.exporter.export()
    yield loop
    session.close()


def _event(path: Path, kind: str = "modified", category: str = "content") -> ChangeEvent:
    return ChangeEvent(path=path, kind=kind, category=category)  # type: ignore[arg-type]


class TestChangedNodeIds:
    def test_identity_diff(self) -> None:
        kept = make_node("kept")
        before = {"kept": kept, "old": make_node("old"), "replaced": make_node("replaced")}
        after = {"kept": kept, "replaced": make_node("replaced"), "new": make_node("new")}
        assert changed_node_ids(before, after) == {"old", "replaced", "new"}


class TestDevelopLoop:
    """handle_change — incremental page-data rewrites."""

    @pytest.mark.asyncio
    async def test_modified_file_rewrites_dependent_page(
        self, develop_loop: DevelopLoop, tmp_site: Path, site_config: OcelotConfig
    ) -> None:
        path = tmp_site / "content" / "blog" / "post.md"
        path.write_text("---\ntitle: Edited\n---\n\nNew body.\n")

        report = await develop_loop.handle_change(_event(path))

        assert report is not None
        assert report.changed_nodes == {"file:blog/post.md", "markdown:blog/post.md"}
        assert report.pages == ("/blog/post/",)
        data = json.loads(
            page_data_path("/blog/post/", site_config.output_path / "page-data").read_text()
        )
        assert data["result"]["nodes"][0]["frontmatter"] == {"title": "Edited"}
        assert "New body." in data["result"]["nodes"][0]["html"]

    @pytest.mark.asyncio
    async def test_unchanged_file_touches_only(
        self, develop_loop: DevelopLoop, tmp_site: Path
    ) -> None:
        report = await develop_loop.handle_change(_event(tmp_site / "content" / "_index.md"))
        assert report is not None
        assert report.changed_nodes == frozenset()
        assert report.pages == ()

    @pytest.mark.asyncio
    async def test_deleted_file_removes_page(
        self, develop_loop: DevelopLoop, tmp_site: Path, site_config: OcelotConfig
    ) -> None:
        path = tmp_site / "content" / "blog" / "post.md"
        output = page_data_path("/blog/post/", site_config.output_path / "page-data")
        assert output.exists()
        path.unlink()

        report = await develop_loop.handle_change(_event(path, kind="deleted"))

        assert report is not None
        assert report.pages == ("/blog/post/",)
        assert not output.exists()
        assert develop_loop.exporter.output_dir.is_dir()

    @pytest.mark.asyncio
    async def test_new_file_adds_page(
        self, develop_loop: DevelopLoop, tmp_site: Path, site_config: OcelotConfig
    ) -> None:
        path = tmp_site / "content" / "about.md"
        path.write_text("# About\n")

        report = await develop_loop.handle_change(_event(path, kind="created"))

        assert report is not None
        assert report.pages == ("/about/",)
        assert page_data_path("/about/", site_config.output_path / "page-data").is_file()

    @pytest.mark.asyncio
    async def test_config_change_needs_restart(
        self,
        develop_loop: DevelopLoop,
        tmp_site: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        event = _event(tmp_site / "ocelot.yaml", category="config")
        assert await develop_loop.handle_change(event) is None
        assert "restart to apply" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_path_outside_source_directory(
        self, develop_loop: DevelopLoop, tmp_site: Path
    ) -> None:
        assert await develop_loop.handle_change(_event(tmp_site / "elsewhere.md")) is None
