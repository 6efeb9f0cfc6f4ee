from __future__ import annotations

import re

from .errors import InvalidArgumentError

DEFAULT_PREFIX = "/"

_NAME_RX = re.compile(r"^[^\s/]\S*$")


def validate_name(name: object) -> str:
    """Return *name* if it is usable as a preference name.

    Names are non-empty strings without whitespace that do not start with
    ``/``.  Slashes inside a name are allowed so related preferences can be
    grouped (``"terminal/font-size"``).
    """
    if not isinstance(name, str) or not _NAME_RX.match(name):
        raise InvalidArgumentError(f"Malformed preference name {name!r}")
    return name


class KeyScheme:
    """Reversible mapping between preference names and storage keys.

    ``key = prefix + name``.  The prefix must end with ``/`` so that the
    inverse is unambiguous.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX) -> None:
        if not isinstance(prefix, str) or not prefix.endswith("/"):
            raise InvalidArgumentError(f"Prefix must end with '/': {prefix!r}")
        self.prefix = prefix

    def to_key(self, name: str) -> str:
        return self.prefix + validate_name(name)

    def to_name(self, key: str) -> str | None:
        """Return the preference name for *key* or ``None`` if unrelated."""
        if not isinstance(key, str) or not key.startswith(self.prefix):
            return None
        name = key[len(self.prefix):]
        if not _NAME_RX.match(name):
            return None
        return name

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"KeyScheme(prefix={self.prefix!r})"
