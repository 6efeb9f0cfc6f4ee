from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..dispatch import Dispatcher, QueueDispatcher

logger = logging.getLogger("prefsync.storage")

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class StorageChange:
    """One mutation of the medium: ``new_value is None`` means deleted."""

    key: str
    old_value: str | None
    new_value: str | None


class Subscription:
    """Handle returned by ``subscribe``/``watch``.

    Calling :meth:`unsubscribe` (or the handle itself) more than once is
    harmless.
    """

    __slots__ = ("_owner", "callback", "active")

    def __init__(self, owner: ListenerList[Any], callback: Any) -> None:
        self._owner = owner
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._owner._discard(self)

    __call__ = unsubscribe


class ListenerList(Generic[T]):
    """Ordered listeners that tolerate removal during iteration."""

    def __init__(self) -> None:
        self._subs: list[Subscription] = []

    def add(self, callback: T) -> Subscription:
        sub = Subscription(self, callback)
        self._subs.append(sub)
        return sub

    def _discard(self, sub: Subscription) -> None:
        try:
            self._subs.remove(sub)
        except ValueError:
            pass

    def clear(self) -> None:
        for sub in self._subs:
            sub.active = False
        self._subs.clear()

    def __len__(self) -> int:
        return len(self._subs)

    def __iter__(self) -> Iterator[T]:
        # Iterate a snapshot; skip entries removed after it was taken.
        for sub in list(self._subs):
            if sub.active:
                yield sub.callback


StorageListener = Callable[[StorageChange], Any]


class Storage(ABC):
    """Key-value medium of serialized strings with a change stream.

    Every mutation produces a :class:`StorageChange` that is delivered to
    each subscriber through :attr:`dispatcher`, never synchronously from
    inside ``set``/``remove``.
    """

    suffixes: tuple[str, ...] = ()

    def __init__(self, dispatcher: Dispatcher | None = None) -> None:
        self.dispatcher: Dispatcher = dispatcher or QueueDispatcher()
        self._listeners: ListenerList[StorageListener] = ListenerList()
        self.closed = False

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass

    def subscribe(self, listener: StorageListener) -> Subscription:
        return self._listeners.add(listener)

    def close(self) -> None:
        """Drop every subscriber and stop reporting changes.

        Changes still queued on the dispatcher are discarded, so writes a
        manager made through this storage never settle.  Close the managers
        first; that cancels their pending futures.
        """
        self._listeners.clear()
        self.closed = True

    def _emit(self, change: StorageChange) -> None:
        if not self.closed:
            self.dispatcher.call_soon(self._deliver, change)

    def _deliver(self, change: StorageChange) -> None:
        if self.closed:
            return
        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                logger.exception("Storage listener %r failed on %s", listener, change.key)

    @staticmethod
    def _check_value(key: str, value: object) -> None:
        if not isinstance(key, str):
            raise TypeError(f"Storage keys must be str, not {type(key).__name__}")
        if not isinstance(value, str):
            raise TypeError(f"Storage values must be str, not {type(value).__name__}")
