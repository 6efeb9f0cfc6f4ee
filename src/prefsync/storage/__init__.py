"""Storage media and a factory picking one by file suffix."""
from __future__ import annotations

from pathlib import Path

from ..dispatch import Dispatcher
from .base import ListenerList, Storage, StorageChange, Subscription

_REGISTRY: dict[str, type[Storage]] = {}


def register_storage(storage: type[Storage]) -> type[Storage]:
    """Register a file storage class and return it for decorator use."""
    for suf in storage.suffixes:
        _REGISTRY[suf] = storage
    return storage


def open_storage(path: str | Path, *, dispatcher: Dispatcher | None = None) -> Storage:
    path = Path(path)
    storage_cls = _REGISTRY.get(path.suffix.lower())
    if storage_cls is None:
        raise ValueError(f"No storage for {path.suffix!r} files")
    return storage_cls(path, dispatcher=dispatcher)


# register default media
from .file import FileStorage, JsonFileStorage, YamlFileStorage  # noqa: E402
from .memory import MemoryMedium, MemoryStorage  # noqa: E402

__all__ = [
    "FileStorage",
    "JsonFileStorage",
    "ListenerList",
    "MemoryMedium",
    "MemoryStorage",
    "Storage",
    "StorageChange",
    "Subscription",
    "YamlFileStorage",
    "open_storage",
    "register_storage",
]
