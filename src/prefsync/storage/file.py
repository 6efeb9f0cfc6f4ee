from __future__ import annotations

import json
import logging
import threading
from abc import abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

from ..dispatch import Dispatcher
from ..errors import StorageLoadError
from . import register_storage
from .base import Storage, StorageChange

logger = logging.getLogger("prefsync.storage")


def diff_snapshots(old: Mapping[str, str], new: Mapping[str, str]) -> list[StorageChange]:
    """Return one change per key that differs between *old* and *new*."""
    changes = []
    for key in sorted(set(old) | set(new)):
        before, after = old.get(key), new.get(key)
        if before != after:
            changes.append(StorageChange(key, before, after))
    return changes


class FileStorage(Storage):
    """Flat ``{key: serialized}`` mapping persisted to a single file.

    Writes from this object are reported immediately.  Writes made by other
    processes show up when :meth:`poll` next runs, either explicitly or from
    the watcher thread started by :meth:`start_watching`.
    """

    def __init__(self, path: str | Path, *, dispatcher: Dispatcher | None = None) -> None:
        super().__init__(dispatcher)
        self.path = Path(path)
        self._lock = threading.RLock()
        self._snapshot: dict[str, str] = self._load()
        self._watcher: threading.Thread | None = None
        self._stop = threading.Event()

    # ----- format hooks -----

    @abstractmethod
    def _parse(self, text: str) -> Any:
        pass

    @abstractmethod
    def _dump(self, data: Mapping[str, str], fh: IO[str]) -> None:
        pass

    # ----- file IO -----

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if raw.strip() == "":
            return {}
        try:
            data = self._parse(raw)
        except Exception as exc:
            raise StorageLoadError(f"{self.path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageLoadError(f"{self.path}: root must be a mapping")
        out: dict[str, str] = {}
        for key, value in data.items():
            if not isinstance(value, str):
                logger.warning("Skipping non-text value for %r in %s", key, self.path)
                continue
            out[str(key)] = value
        return out

    def _save(self, data: Mapping[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fh:
                self._dump(data, fh)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        tmp.replace(self.path)

    # ----- Storage API -----

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._snapshot.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._snapshot)

    def set(self, key: str, value: str) -> None:
        self._check_value(key, value)
        self._write(key, value)

    def remove(self, key: str) -> None:
        self._write(key, None)

    def _write(self, key: str, value: str | None) -> None:
        with self._lock:
            # Report anything other processes wrote first, so events for a
            # key keep the order the file saw them in.
            self.poll()
            data = dict(self._snapshot)
            old = data.get(key)
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
            self._save(data)
            self._snapshot = data
        self._emit(StorageChange(key, old, value))

    def poll(self) -> int:
        """Reload the file and report external changes; return their count."""
        with self._lock:
            fresh = self._load()
            changes = diff_snapshots(self._snapshot, fresh)
            self._snapshot = fresh
        for change in changes:
            self._emit(change)
        return len(changes)

    # ----- watcher -----

    def start_watching(self, interval: float = 1.0) -> None:
        if self._watcher is not None:
            return
        self._stop.clear()
        self._watcher = threading.Thread(
            target=self._watch_loop, args=(interval,), name=f"prefsync-watch:{self.path.name}", daemon=True
        )
        self._watcher.start()

    def stop_watching(self) -> None:
        watcher = self._watcher
        if watcher is None:
            return
        self._stop.set()
        if watcher is not threading.current_thread():
            watcher.join()
        self._watcher = None

    def _watch_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            try:
                self.poll()
            except (OSError, StorageLoadError) as exc:
                logger.warning("Polling %s failed: %s", self.path, exc)

    def close(self) -> None:
        self.stop_watching()
        super().close()


@register_storage
class JsonFileStorage(FileStorage):
    """JSON file medium."""

    suffixes = (".json",)

    def _parse(self, text: str) -> Any:
        return json.loads(text)

    def _dump(self, data: Mapping[str, str], fh: IO[str]) -> None:
        json.dump(dict(data), fh, indent=2, sort_keys=True, ensure_ascii=False)


@register_storage
class YamlFileStorage(FileStorage):
    """YAML file medium."""

    suffixes = (".yaml", ".yml")

    def _require_yaml(self):
        try:
            import yaml  # type: ignore
        except ModuleNotFoundError as exc:
            raise StorageLoadError("PyYAML is required for YAML storage") from exc
        return yaml

    def _parse(self, text: str) -> Any:
        return self._require_yaml().safe_load(text)

    def _dump(self, data: Mapping[str, str], fh: IO[str]) -> None:
        self._require_yaml().safe_dump(dict(data), fh, sort_keys=True, allow_unicode=True)
