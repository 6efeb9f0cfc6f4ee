from __future__ import annotations

import copy
import logging
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .errors import InvalidArgumentError
from .serialization import values_equal
from .storage.base import ListenerList, Subscription

logger = logging.getLogger("prefsync")


@runtime_checkable
class PreferenceListener(Protocol):
    def on_change(self, value: Any) -> None: ...


class CallbackListener:
    """Adapt a plain callable to :class:`PreferenceListener`."""

    __slots__ = ("fn",)

    def __init__(self, fn: Callable[[Any], Any]) -> None:
        self.fn = fn

    def on_change(self, value: Any) -> None:
        self.fn(value)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"CallbackListener({self.fn!r})"


def as_listener(obj: PreferenceListener | Callable[[Any], Any]) -> PreferenceListener:
    if isinstance(obj, PreferenceListener):
        return obj
    if callable(obj):
        return CallbackListener(obj)
    raise InvalidArgumentError(f"Listener must be callable or define on_change(): {obj!r}")


@dataclass(eq=False)
class PreferenceRecord:
    """In-memory state of one defined preference."""

    name: str
    default_value: Any
    current_value: Any
    listeners: ListenerList[PreferenceListener] = field(default_factory=ListenerList)
    # (written text or None for a removal, future) in write order
    pending: deque[tuple[str | None, Future[Any]]] = field(default_factory=deque)

    @property
    def is_default(self) -> bool:
        return values_equal(self.current_value, self.default_value)

    def add_listener(self, listener: PreferenceListener | Callable[[Any], Any]) -> Subscription:
        return self.listeners.add(as_listener(listener))

    def update(self, value: Any) -> bool:
        """Store *value* as the effective value; return whether it changed."""
        if values_equal(value, self.current_value):
            return False
        self.current_value = value
        return True

    def notify(self, value: Any) -> None:
        """Call every listener with *value*, isolating failures.

        *value* is captured by the caller so that a listener whose own write
        is reconciled re-entrantly does not change what later listeners see.
        """
        for listener in self.listeners:
            try:
                listener.on_change(copy.deepcopy(value))
            except Exception:
                logger.exception("Listener %r for preference %r failed", listener, self.name)

    def expect(self, text: str | None) -> Future[Any]:
        future: Future[Any] = Future()
        self.pending.append((text, future))
        return future

    def settle(self, text: str | None) -> None:
        """Resolve the oldest pending write whose text matches *text*."""
        for entry in self.pending:
            if entry[0] == text:
                self.pending.remove(entry)
                if not entry[1].done():
                    entry[1].set_result(copy.deepcopy(self.current_value))
                return

    def forget(self, future: Future[Any]) -> None:
        for entry in self.pending:
            if entry[1] is future:
                self.pending.remove(entry)
                return

    def cancel_pending(self) -> None:
        while self.pending:
            _, future = self.pending.popleft()
            future.cancel()
