from __future__ import annotations

import pytest

from prefsync import MemoryMedium, MemoryStorage, QueueDispatcher, StorageChange


def _view(medium):
    dispatcher = QueueDispatcher()
    return MemoryStorage(medium, dispatcher=dispatcher), dispatcher


def test_get_set_remove():
    storage = MemoryStorage()
    assert storage.get("/a") is None
    storage.set("/a", "1")
    assert storage.get("/a") == "1"
    assert storage.keys() == ["/a"]
    storage.remove("/a")
    assert storage.get("/a") is None


def test_values_must_be_text():
    storage = MemoryStorage()
    with pytest.raises(TypeError):
        storage.set("/a", 1)  # type: ignore[arg-type]


def test_events_are_deferred_and_include_writer():
    storage, loop = _view(MemoryMedium())
    seen = []
    storage.subscribe(seen.append)
    storage.set("/a", "1")
    assert seen == []
    loop.run_pending()
    assert seen == [StorageChange("/a", None, "1")]


def test_every_view_of_the_medium_is_notified():
    medium = MemoryMedium()
    first, first_loop = _view(medium)
    second, second_loop = _view(medium)
    seen_first, seen_second = [], []
    first.subscribe(seen_first.append)
    second.subscribe(seen_second.append)

    second.set("/a", "1")
    second.remove("/a")
    first_loop.run_pending()
    expected = [StorageChange("/a", None, "1"), StorageChange("/a", "1", None)]
    assert seen_first == expected
    assert seen_second == []
    second_loop.run_pending()
    assert seen_second == expected


def test_remove_of_missing_key_still_reports():
    storage, loop = _view(MemoryMedium())
    seen = []
    storage.subscribe(seen.append)
    storage.remove("/nothing")
    loop.run_pending()
    assert seen == [StorageChange("/nothing", None, None)]


def test_unsubscribe_from_inside_listener():
    storage, loop = _view(MemoryMedium())
    seen = []

    def first(change):
        seen.append(("first", change.new_value))
        sub.unsubscribe()

    sub = storage.subscribe(first)
    storage.subscribe(lambda change: seen.append(("second", change.new_value)))
    storage.set("/a", "1")
    storage.set("/a", "2")
    loop.run_pending()
    assert seen == [("first", "1"), ("second", "1"), ("second", "2")]


def test_failing_listener_does_not_stop_others():
    storage, loop = _view(MemoryMedium())
    seen = []

    def bad(change):
        raise RuntimeError("boom")

    storage.subscribe(bad)
    storage.subscribe(seen.append)
    storage.set("/a", "1")
    loop.run_pending()
    assert len(seen) == 1


def test_closed_view_stops_receiving():
    medium = MemoryMedium()
    first, first_loop = _view(medium)
    second, _ = _view(medium)
    seen = []
    first.subscribe(seen.append)
    first.close()
    second.set("/a", "1")
    assert first_loop.run_pending() == 0
    assert seen == []
    # the medium itself is unaffected
    assert second.get("/a") == "1"


def test_new_view_shares_data():
    medium = MemoryMedium({"/a": "1"})
    view = medium.new_view()
    assert view.get("/a") == "1"
    assert view.medium is medium


def test_close_drops_queued_changes():
    storage, loop = _view(MemoryMedium())
    seen = []
    storage.subscribe(seen.append)
    storage.set("/a", "1")
    storage.close()
    assert loop.run_pending() == 1
    assert seen == []
