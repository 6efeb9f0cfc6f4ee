class PrefsyncError(Exception):
    """Base class for prefsync errors."""


class InvalidArgumentError(PrefsyncError, ValueError):
    """Raised for duplicate definitions and malformed names or prefixes."""


class UnknownPreferenceError(PrefsyncError, KeyError):
    """Raised when operating on a preference that was never defined."""


class SerializationError(PrefsyncError, TypeError):
    """Raised when a value cannot be encoded for storage."""


class MalformedStoredValueError(PrefsyncError):
    """Raised when stored text cannot be decoded."""


class StorageLoadError(PrefsyncError):
    """Raised when a storage medium fails to parse its file."""
