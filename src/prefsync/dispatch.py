"""Deferred callback delivery.

Storage change events are never delivered from inside the write that caused
them.  Each storage view hands them to a dispatcher, which stands in for the
host's event loop: the callbacks run on a later turn of whatever loop owns
the context.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger("prefsync.dispatch")


@runtime_checkable
class Dispatcher(Protocol):
    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None: ...


class QueueDispatcher:
    """FIFO of pending callbacks drained explicitly by the owning context.

    ``call_soon`` may be used from any thread; ``run_pending`` must be called
    by the context that owns the preferences.
    """

    def __init__(self) -> None:
        self._queue: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()
        self._lock = threading.Lock()

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            self._queue.append((fn, args))

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def run_pending(self) -> int:
        """Run queued callbacks until the queue is empty and return the count.

        Callbacks queued while draining run in the same call.
        """
        ran = 0
        while True:
            with self._lock:
                if not self._queue:
                    return ran
                fn, args = self._queue.popleft()
            try:
                fn(*args)
            except Exception:
                logger.exception("Dispatched callback %r failed", fn)
            ran += 1


class ImmediateDispatcher:
    """Run callbacks synchronously, for scripts with no event loop.

    A callback scheduled from inside another one runs after it returns,
    still before the outermost ``call_soon`` does.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        queue = getattr(self._local, "queue", None)
        if queue is not None:
            queue.append((fn, args))
            return
        queue = self._local.queue = deque([(fn, args)])
        try:
            while queue:
                fn, args = queue.popleft()
                try:
                    fn(*args)
                except Exception:
                    logger.exception("Dispatched callback %r failed", fn)
        finally:
            self._local.queue = None


class AsyncioDispatcher:
    """Schedule callbacks on an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.loop = loop or asyncio.get_running_loop()

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        self.loop.call_soon_threadsafe(fn, *args)


__all__ = ["Dispatcher", "QueueDispatcher", "ImmediateDispatcher", "AsyncioDispatcher"]
