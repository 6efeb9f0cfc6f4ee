from __future__ import annotations

import threading

from ..dispatch import Dispatcher
from .base import Storage, StorageChange


class MemoryMedium:
    """A key-value medium shared by several :class:`MemoryStorage` views.

    Each view models one execution context (a window, a worker) with its own
    dispatcher.  A mutation through any view is reported to all of them.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._views: list[MemoryStorage] = []
        self._lock = threading.RLock()

    def attach(self, view: MemoryStorage) -> None:
        with self._lock:
            self._views.append(view)

    def detach(self, view: MemoryStorage) -> None:
        with self._lock:
            if view in self._views:
                self._views.remove(view)

    def read(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def write(self, key: str, value: str | None) -> None:
        """Store *value* (``None`` deletes) and fan the change out."""
        with self._lock:
            old = self._data.get(key)
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
            change = StorageChange(key, old, value)
            views = list(self._views)
        for view in views:
            view._emit(change)

    def new_view(self, dispatcher: Dispatcher | None = None) -> MemoryStorage:
        return MemoryStorage(self, dispatcher=dispatcher)


class MemoryStorage(Storage):
    """One context's view of a :class:`MemoryMedium`."""

    def __init__(
        self,
        medium: MemoryMedium | None = None,
        *,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        super().__init__(dispatcher)
        self.medium = medium if medium is not None else MemoryMedium()
        self.medium.attach(self)

    def get(self, key: str) -> str | None:
        return self.medium.read(key)

    def set(self, key: str, value: str) -> None:
        self._check_value(key, value)
        self.medium.write(key, value)

    def remove(self, key: str) -> None:
        self.medium.write(key, None)

    def keys(self) -> list[str]:
        return self.medium.keys()

    def close(self) -> None:
        self.medium.detach(self)
        super().close()
