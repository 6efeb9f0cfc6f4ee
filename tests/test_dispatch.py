from __future__ import annotations

import asyncio

from prefsync import (
    AsyncioDispatcher,
    ImmediateDispatcher,
    MemoryStorage,
    PreferenceManager,
    QueueDispatcher,
)


def test_queue_runs_in_order_including_nested():
    loop = QueueDispatcher()
    seen = []

    def outer():
        seen.append("outer")
        loop.call_soon(seen.append, "nested")

    loop.call_soon(outer)
    loop.call_soon(seen.append, "second")
    assert loop.pending() == 2
    assert loop.run_pending() == 3
    assert seen == ["outer", "second", "nested"]
    assert loop.run_pending() == 0


def test_queue_survives_failing_callback(caplog):
    loop = QueueDispatcher()
    seen = []
    loop.call_soon(lambda: 1 / 0)
    loop.call_soon(seen.append, "after")
    assert loop.run_pending() == 2
    assert seen == ["after"]
    assert any("failed" in r.getMessage() for r in caplog.records)


def test_immediate_dispatcher_runs_synchronously():
    storage = MemoryStorage(dispatcher=ImmediateDispatcher())
    manager = PreferenceManager(storage)
    manager.define_preference("color", "red")
    future = manager.set("color", "blue")
    assert future.result(timeout=0) == "blue"
    assert manager.get("color") == "blue"


def test_immediate_dispatcher_defers_nested_callbacks():
    loop = ImmediateDispatcher()
    seen = []

    def outer():
        loop.call_soon(seen.append, "nested")
        seen.append("outer")

    loop.call_soon(outer)
    assert seen == ["outer", "nested"]
    loop.call_soon(seen.append, "next")
    assert seen == ["outer", "nested", "next"]


def test_asyncio_dispatcher_completes_future():
    async def scenario():
        storage = MemoryStorage(dispatcher=AsyncioDispatcher())
        manager = PreferenceManager(storage)
        manager.define_preference("color", "red")
        future = manager.set("color", "blue")
        before = manager.get("color")
        value = await asyncio.wait_for(asyncio.wrap_future(future), 1)
        return before, value, manager.get("color")

    assert asyncio.run(scenario()) == ("red", "blue", "blue")
