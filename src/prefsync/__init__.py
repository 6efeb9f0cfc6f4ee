from .dispatch import AsyncioDispatcher, ImmediateDispatcher, QueueDispatcher
from .errors import (
    InvalidArgumentError,
    MalformedStoredValueError,
    PrefsyncError,
    SerializationError,
    StorageLoadError,
    UnknownPreferenceError,
)
from .keys import KeyScheme
from .manager import PreferenceManager
from .records import PreferenceListener
from .storage import (
    JsonFileStorage,
    MemoryMedium,
    MemoryStorage,
    Storage,
    StorageChange,
    Subscription,
    YamlFileStorage,
    open_storage,
)


__all__ = [
    "AsyncioDispatcher",
    "ImmediateDispatcher",
    "InvalidArgumentError",
    "JsonFileStorage",
    "KeyScheme",
    "MalformedStoredValueError",
    "MemoryMedium",
    "MemoryStorage",
    "PreferenceListener",
    "PreferenceManager",
    "PrefsyncError",
    "QueueDispatcher",
    "SerializationError",
    "Storage",
    "StorageChange",
    "StorageLoadError",
    "Subscription",
    "UnknownPreferenceError",
    "YamlFileStorage",
    "open_storage",
]
