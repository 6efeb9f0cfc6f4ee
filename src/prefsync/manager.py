from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future
from typing import Any, Union

from .errors import (
    InvalidArgumentError,
    MalformedStoredValueError,
    PrefsyncError,
    SerializationError,
    UnknownPreferenceError,
)
from .keys import DEFAULT_PREFIX, KeyScheme
from .records import PreferenceListener, PreferenceRecord, as_listener
from .serialization import decode, encode, values_equal
from .storage.base import ListenerList, Storage, StorageChange, Subscription

logger = logging.getLogger("prefsync")

Listener = Union[PreferenceListener, Callable[[Any], Any]]


class PreferenceManager:
    """Named, defaulted preferences kept in sync with a shared storage.

    Every change to an effective value, local or remote, goes through one
    path: a :class:`~prefsync.storage.StorageChange` arrives from the storage
    subscription and is reconciled against the preference's default.  As a
    consequence ``set`` and ``reset`` do not change what ``get`` returns
    until the storage has delivered the resulting event; the futures they
    return complete at that point.

    A removed stored value always means "use the default" and never leaves a
    preference without a value.
    """

    def __init__(self, storage: Storage, *, prefix: str = DEFAULT_PREFIX) -> None:
        self.storage = storage
        self.keys = KeyScheme(prefix)
        self._records: dict[str, PreferenceRecord] = {}
        self._global: ListenerList[Callable[[str, Any], Any]] = ListenerList()
        self._subscription: Subscription | None = storage.subscribe(self._on_storage_change)

    def __enter__(self) -> PreferenceManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"<PreferenceManager prefix={self.keys.prefix!r} prefs={len(self._records)}>"

    @property
    def closed(self) -> bool:
        return self._subscription is None

    # ----- internals -----

    def _record(self, name: str) -> PreferenceRecord:
        try:
            return self._records[name]
        except KeyError:
            raise UnknownPreferenceError(f"Unknown preference {name!r}") from None

    def _resolve(self, record_name: str, default: Any, text: str | None) -> Any:
        if text is None:
            return copy.deepcopy(default)
        try:
            return decode(text)
        except MalformedStoredValueError as exc:
            logger.warning("Using default for %r: %s", record_name, exc)
            return copy.deepcopy(default)

    def _reconcile(self, record: PreferenceRecord, text: str | None) -> bool:
        value = self._resolve(record.name, record.default_value, text)
        if not record.update(value):
            return False
        self._notify(record, value)
        return True

    def _notify(self, record: PreferenceRecord, value: Any) -> None:
        record.notify(value)
        for callback in self._global:
            try:
                callback(record.name, copy.deepcopy(value))
            except Exception:
                logger.exception("Global listener %r failed for %r", callback, record.name)

    def _on_storage_change(self, change: StorageChange) -> None:
        name = self.keys.to_name(change.key)
        record = self._records.get(name) if name is not None else None
        if record is None:
            logger.debug("Ignoring change to unmapped key %r", change.key)
            return
        self._reconcile(record, change.new_value)
        record.settle(change.new_value)

    def _write(self, record: PreferenceRecord, text: str | None) -> Future[Any]:
        key = self.keys.to_key(record.name)
        future = record.expect(text)
        try:
            if text is None:
                self.storage.remove(key)
            else:
                self.storage.set(key, text)
        except Exception:
            record.forget(future)
            raise
        return future

    def _check_open(self) -> None:
        if self.closed:
            raise PrefsyncError("PreferenceManager is closed")

    # ----- definition -----

    def define_preference(
        self, name: str, default_value: Any, on_change: Listener | None = None
    ) -> None:
        """Define *name* with *default_value*.

        The effective value is resolved from storage right away.  When
        *on_change* is given it is registered and called once with that
        value before this method returns.
        """
        self._check_open()
        key = self.keys.to_key(name)
        if name in self._records:
            raise InvalidArgumentError(f"Preference {name!r} is already defined")
        try:
            encode(default_value)
        except SerializationError as exc:
            raise InvalidArgumentError(f"Default for {name!r} is not serializable: {exc}") from exc
        listener = as_listener(on_change) if on_change is not None else None
        default = copy.deepcopy(default_value)
        record = PreferenceRecord(name, default, self._resolve(name, default, self.storage.get(key)))
        self._records[name] = record
        if listener is not None:
            record.add_listener(listener)
            record.notify(record.current_value)

    def define_preferences(self, defaults: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> None:
        items = defaults.items() if isinstance(defaults, Mapping) else defaults
        for name, default in items:
            self.define_preference(name, default)

    def undefine_preference(self, name: str) -> None:
        """Forget *name*; whatever is stored for it is left alone."""
        record = self._record(name)
        del self._records[name]
        record.listeners.clear()
        record.cancel_pending()

    def is_defined(self, name: str) -> bool:
        return name in self._records

    def names(self) -> list[str]:
        return list(self._records)

    # ----- values -----

    def get(self, name: str) -> Any:
        return copy.deepcopy(self._record(name).current_value)

    def get_default(self, name: str) -> Any:
        return copy.deepcopy(self._record(name).default_value)

    def is_default(self, name: str) -> bool:
        return self._record(name).is_default

    def set(self, name: str, value: Any) -> Future[Any]:
        """Write *value* for *name* and return a future for the reconciled value.

        ``get`` keeps returning the previous value until the storage delivers
        the change.  Writing the default removes the stored override.
        """
        record = self._record(name)
        text = encode(value)
        if values_equal(value, record.default_value):
            return self._write(record, None)
        return self._write(record, text)

    def reset(self, name: str) -> Future[Any]:
        """Remove the stored override so *name* falls back to its default."""
        return self._write(self._record(name), None)

    def reset_all(self) -> list[Future[Any]]:
        return [self.reset(name) for name in self.names()]

    def change_default(self, name: str, value: Any) -> None:
        """Replace the default of *name*.

        Listeners fire if this changes the effective value, i.e. when no
        override is stored.
        """
        record = self._record(name)
        try:
            encode(value)
        except SerializationError as exc:
            raise InvalidArgumentError(f"Default for {name!r} is not serializable: {exc}") from exc
        record.default_value = copy.deepcopy(value)
        self._reconcile(record, self.storage.get(self.keys.to_key(name)))

    def read_storage(self) -> list[str]:
        """Re-resolve every preference from storage; return the changed names."""
        changed = []
        for name, record in list(self._records.items()):
            if self._reconcile(record, self.storage.get(self.keys.to_key(name))):
                changed.append(name)
        return changed

    # ----- listeners -----

    def watch(self, name: str, callback: Listener) -> Subscription:
        """Register another listener for *name* without calling it now."""
        return self._record(name).add_listener(callback)

    def watch_all(self, callback: Callable[[str, Any], Any]) -> Subscription:
        """Register *callback(name, value)* for every preference change."""
        return self._global.add(callback)

    def notify_all(self) -> None:
        """Call every listener with the current value of its preference."""
        for record in list(self._records.values()):
            self._notify(record, record.current_value)

    # ----- bulk import / export -----

    def export_overrides(self) -> dict[str, Any]:
        """Return name -> stored value for overrides that differ from the default."""
        out: dict[str, Any] = {}
        for name, record in self._records.items():
            text = self.storage.get(self.keys.to_key(name))
            if text is None:
                continue
            try:
                value = decode(text)
            except MalformedStoredValueError:
                continue
            if not values_equal(value, record.default_value):
                out[name] = value
        return out

    def import_overrides(self, values: Mapping[str, Any], *, clear: bool = False) -> list[Future[Any]]:
        """Write every entry of *values*; with *clear* reset the others.

        All names and values are checked before anything is written.
        """
        for name, value in values.items():
            self._record(name)
            encode(value)
        futures = []
        if clear:
            futures.extend(self.reset(name) for name in self.names() if name not in values)
        futures.extend(self.set(name, value) for name, value in values.items())
        return futures

    # ----- teardown -----

    def close(self) -> None:
        """Release the storage subscription and drop all preferences."""
        if self._subscription is None:
            return
        self._subscription.unsubscribe()
        self._subscription = None
        for record in self._records.values():
            record.listeners.clear()
            record.cancel_pending()
        self._records.clear()
        self._global.clear()
