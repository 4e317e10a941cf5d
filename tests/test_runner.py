"""Tests for ocelot.plugins.runner — store events driving plugin hooks."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from ocelot._errors import NodeValidationError, PluginError
from ocelot.observability.events import HookInvoked
from ocelot.plugins.registry import Plugin, PluginRegistry
from ocelot.plugins.runner import ApiRunner, PluginApi
from ocelot.store import actions as a
from ocelot.store.store import Store

from .conftest import make_node


def _runner(store: Store, **modules: Any) -> ApiRunner:
    registry = PluginRegistry(Plugin(name=name, module=module) for name, module in modules.items())
    return ApiRunner(store, registry)


class TestActionHooks:
    """Each emitted action reaches each implementing plugin exactly once."""

    @pytest.mark.asyncio
    async def test_create_node_end_to_end(self) -> None:
        received: list[dict[str, Any]] = []
        events: list[str] = []

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            received.append(node)

        store = Store()
        runner = _runner(store, **{"plugin-a": SimpleNamespace(on_create_node=on_create_node)})
        store.emitter.on(a.CREATE_NODE, lambda action: events.append(action.payload["id"]))

        store.dispatch(a.create_node(
            {"id": "n1", "internal": {"contentDigest": "h1", "owner": "plugin-a"}, "title": "Hello"}
        ))
        await runner.flush()

        assert store.get_node("n1")["title"] == "Hello"
        assert events == ["n1"]
        assert len(received) == 1
        assert received[0] is store.get_node("n1")

    @pytest.mark.asyncio
    async def test_create_node_hook_invoked_once(self) -> None:
        calls: list[tuple[str, str]] = []

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            calls.append((api.plugin_name, node["id"]))

        store = Store()
        runner = _runner(store, **{"plugin-a": SimpleNamespace(on_create_node=on_create_node)})
        store.dispatch(a.create_node(make_node("n1", owner="plugin-a")))
        assert runner.pending == 1

        assert await runner.flush() == 1
        assert await runner.flush() == 0
        assert calls == [("plugin-a", "n1")]

    @pytest.mark.asyncio
    async def test_plugins_run_in_registration_order(self) -> None:
        order: list[str] = []

        def hook_for(name: str) -> Any:
            async def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
                await asyncio.sleep(0)
                order.append(name)

            return on_create_node

        store = Store()
        runner = _runner(
            store,
            second=SimpleNamespace(on_create_node=hook_for("second")),
            first=SimpleNamespace(on_create_node=hook_for("first")),
        )
        store.dispatch(a.create_node(make_node("n1")))
        await runner.flush()
        assert order == ["second", "first"]

    @pytest.mark.asyncio
    async def test_jobs_handled_in_dispatch_order(self) -> None:
        seen: list[str] = []

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            seen.append(f"create:{node['id']}")

        def on_delete_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            seen.append(f"delete:{node['id']}")

        store = Store()
        runner = _runner(
            store, p=SimpleNamespace(on_create_node=on_create_node, on_delete_node=on_delete_node)
        )
        store.dispatch(a.create_node(make_node("n1")))
        store.dispatch(a.create_node(make_node("n2")))
        store.dispatch(a.delete_node(store.get_node("n1")))
        await runner.flush()
        assert seen == ["create:n1", "create:n2", "delete:n1"]

    @pytest.mark.asyncio
    async def test_hook_dispatches_are_queued_behind(self) -> None:
        seen: list[str] = []

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            seen.append(node["id"])
            if node["internal"]["type"] == "File":
                api.create_node(make_node(f"child-of-{node['id']}", owner="t", parent=node["id"]))

        store = Store()
        runner = _runner(store, t=SimpleNamespace(on_create_node=on_create_node))
        store.dispatch(a.create_node(make_node("f1", node_type="File")))
        store.dispatch(a.create_node(make_node("f2", node_type="File")))
        assert await runner.flush() == 4
        assert seen == ["f1", "f2", "child-of-f1", "child-of-f2"]
        assert store.get_node("f1")["children"] == ["child-of-f1"]

    @pytest.mark.asyncio
    async def test_hook_args(self) -> None:
        received: dict[str, Any] = {}

        def on_update_node(api: PluginApi, node: dict[str, Any], field: str, value: Any) -> None:
            received.update(node=node, field=field, value=value)

        def on_delete_nodes(api: PluginApi, nodes: list[dict[str, Any]]) -> None:
            received["deleted"] = [n["id"] for n in nodes]

        def on_create_page(api: PluginApi, page: dict[str, Any]) -> None:
            received["page"] = page["path"]

        store = Store()
        runner = _runner(
            store,
            p=SimpleNamespace(
                on_update_node=on_update_node,
                on_delete_nodes=on_delete_nodes,
                on_create_page=on_create_page,
            ),
        )
        store.dispatch(a.create_node(make_node("n1")))
        store.dispatch(a.create_node_field(store.get_node("n1"), "slug", "/n1/"))
        store.dispatch(a.create_page("/n1/", "c"))
        store.dispatch(a.delete_nodes([store.get_node("n1")]))
        await runner.flush()

        assert received["field"] == "slug"
        assert received["value"] == "/n1/"
        assert received["node"]["fields"] == {"slug": "/n1/"}
        assert received["page"] == "/n1/"
        assert received["deleted"] == ["n1"]

    @pytest.mark.asyncio
    async def test_failure_wrapped_and_recorded(self) -> None:
        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            raise ValueError("bad node")

        store = Store()
        runner = _runner(store, broken=SimpleNamespace(on_create_node=on_create_node))
        store.dispatch(a.create_node(make_node("n1")))
        store.dispatch(a.create_node(make_node("n2")))

        with pytest.raises(PluginError, match="'broken' failed in on_create_node: bad node"):
            await runner.flush()
        assert runner.pending == 1
        events = store.collector.log.query(event_type=HookInvoked)
        assert events[0].ok is False
        assert events[0].action_type == a.CREATE_NODE

    @pytest.mark.asyncio
    async def test_detach_stops_queueing(self) -> None:
        store = Store()
        runner = _runner(store, p=SimpleNamespace(on_create_node=lambda api, node: None))
        runner.detach()
        store.dispatch(a.create_node(make_node("n1")))
        assert runner.pending == 0


class TestRunApi:
    """run_api — lifecycle hooks."""

    @pytest.mark.asyncio
    async def test_results_in_order_and_flushes(self) -> None:
        created: list[str] = []

        def source_nodes(api: PluginApi, **args: Any) -> int:
            api.create_node(make_node(f"{api.plugin_name}-1", owner=api.plugin_name))
            return args["value"]

        async def async_source(api: PluginApi, **args: Any) -> int:
            return args["value"] * 2

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            created.append(node["id"])

        store = Store()
        runner = _runner(
            store,
            a=SimpleNamespace(source_nodes=source_nodes, on_create_node=on_create_node),
            b=SimpleNamespace(source_nodes=async_source),
            c=SimpleNamespace(),
        )
        assert await runner.run_api("source_nodes", value=5) == [5, 10]
        assert created == ["a-1"]
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_action_hooks_drain_after_every_plugin(self) -> None:
        order: list[str] = []

        def source_a(api: PluginApi, **_: Any) -> None:
            order.append("source:a")
            api.create_node(make_node("a-1", owner=api.plugin_name))

        def source_b(api: PluginApi, **_: Any) -> None:
            order.append("source:b")

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            order.append(f"created:{node['id']}")

        store = Store()
        runner = _runner(
            store,
            a=SimpleNamespace(source_nodes=source_a, on_create_node=on_create_node),
            b=SimpleNamespace(source_nodes=source_b),
        )
        await runner.run_api("source_nodes")
        assert order == ["source:a", "source:b", "created:a-1"]

    @pytest.mark.asyncio
    async def test_without_flush(self) -> None:
        def source_nodes(api: PluginApi, **_: Any) -> None:
            api.create_node(make_node("n1", owner=api.plugin_name))

        store = Store()
        runner = _runner(
            store, p=SimpleNamespace(source_nodes=source_nodes, on_create_node=lambda api, node: None)
        )
        await runner.run_api("source_nodes", flush=False)
        assert runner.pending == 1


class TestPluginApi:
    """PluginApi — scoped reads and ownership-checked writes."""

    @pytest.mark.asyncio
    async def test_cannot_create_foreign_node(self) -> None:
        def source_nodes(api: PluginApi, **_: Any) -> None:
            api.create_node(make_node("n1", owner="someone-else"))

        store = Store()
        runner = _runner(store, p=SimpleNamespace(source_nodes=source_nodes))
        with pytest.raises(PluginError) as exc_info:
            await runner.run_api("source_nodes")
        assert isinstance(exc_info.value.__cause__, NodeValidationError)

    @pytest.mark.asyncio
    async def test_cannot_replace_foreign_node(self) -> None:
        def source_nodes(api: PluginApi, **_: Any) -> None:
            api.create_node(make_node("n1", owner=api.plugin_name))

        store = Store()
        store.dispatch(a.create_node(make_node("n1", owner="owner")))
        runner = _runner(store, p=SimpleNamespace(source_nodes=source_nodes))
        with pytest.raises(PluginError, match="is owned by 'owner'"):
            await runner.run_api("source_nodes")

    @pytest.mark.asyncio
    async def test_status_is_per_plugin(self) -> None:
        def source_nodes(api: PluginApi, **_: Any) -> dict[str, Any]:
            api.set_status({"cursor": api.plugin_name})
            return api.get_status()

        store = Store()
        runner = _runner(
            store,
            p=SimpleNamespace(source_nodes=source_nodes),
            q=SimpleNamespace(source_nodes=source_nodes),
        )
        assert await runner.run_api("source_nodes") == [{"cursor": "p"}, {"cursor": "q"}]

    @pytest.mark.asyncio
    async def test_reads_and_content(self) -> None:
        node = make_node("n1", owner="p", content="inline text", meta={"k": 1})

        async def source_nodes(api: PluginApi, **_: Any) -> dict[str, Any]:
            api.create_node(node)
            stored = api.get_node("n1")
            return {
                "content": await api.load_node_content(stored),
                "owner": api.get_owner_node_id(stored["meta"]),
                "changed": api.has_node_changed("n1", stored["internal"]["contentDigest"]),
                "types": [n["id"] for n in api.get_nodes_by_type("Test")],
                "digest": api.create_content_digest("x") == api.create_content_digest(b"x"),
            }

        store = Store()
        runner = _runner(store, p=SimpleNamespace(source_nodes=source_nodes))
        (result,) = await runner.run_api("source_nodes")
        assert result == {
            "content": "inline text",
            "owner": "n1",
            "changed": False,
            "types": ["n1"],
            "digest": True,
        }

    @pytest.mark.asyncio
    async def test_touch_delete_and_pages(self) -> None:
        def source_nodes(api: PluginApi, **_: Any) -> None:
            api.create_node(make_node("n1", owner=api.plugin_name))
            api.touch_node("n1")
            api.create_node_field(api.get_node("n1"), "slug", "/n1/")
            api.create_page("/n1/", "comp", {"node_ids": ["n1"]})
            api.delete_page("/n1/")
            api.delete_node(api.get_node("n1"))

        store = Store()
        runner = _runner(store, p=SimpleNamespace(source_nodes=source_nodes))
        await runner.run_api("source_nodes")
        assert store.get_nodes() == []
        assert store.get_pages() == []


class TestBackgroundMode:
    """start / stop — draining without explicit flush calls."""

    @pytest.mark.asyncio
    async def test_background_drain(self) -> None:
        done = asyncio.Event()

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            done.set()

        store = Store()
        runner = _runner(store, p=SimpleNamespace(on_create_node=on_create_node))
        runner.start()
        assert runner.is_running
        store.dispatch(a.create_node(make_node("n1")))
        await asyncio.wait_for(done.wait(), timeout=5)
        await runner.stop()
        assert not runner.is_running

    @pytest.mark.asyncio
    async def test_background_survives_errors(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        handled: list[str] = []

        def on_create_node(api: PluginApi, node: dict[str, Any], **_: Any) -> None:
            if node["id"] == "bad":
                raise RuntimeError("nope")
            handled.append(node["id"])

        store = Store()
        runner = _runner(store, p=SimpleNamespace(on_create_node=on_create_node))
        runner.start()
        store.dispatch(a.create_node(make_node("bad")))
        store.dispatch(a.create_node(make_node("good")))
        for _ in range(100):
            if handled:
                break
            await asyncio.sleep(0.01)
        await runner.stop()
        assert handled == ["good"]
        assert "nope" in capsys.readouterr().err
