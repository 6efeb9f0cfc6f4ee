from __future__ import annotations

from typing import Any

from prefsync import MemoryMedium, MemoryStorage, PreferenceManager, QueueDispatcher


class Recorder:
    """Callable listener remembering every value it was given."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def __call__(self, value: Any) -> None:
        self.values.append(value)


class OnChangeListener:
    def __init__(self) -> None:
        self.values: list[Any] = []

    def on_change(self, value: Any) -> None:
        self.values.append(value)


class Context:
    """One execution context: a storage view, its event loop and a manager."""

    def __init__(self, medium: MemoryMedium, prefix: str = "/") -> None:
        self.dispatcher = QueueDispatcher()
        self.storage = MemoryStorage(medium, dispatcher=self.dispatcher)
        self.manager = PreferenceManager(self.storage, prefix=prefix)

    def run(self) -> int:
        return self.dispatcher.run_pending()
