"""Textual encoding of preference values.

Values are stored as JSON text.  Anything ``json`` can encode without
``NaN``/``Infinity`` is accepted; everything else is rejected at write time.
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from .errors import MalformedStoredValueError, SerializationError


def encode(value: Any) -> str:
    try:
        return json.dumps(value, allow_nan=False, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot serialize {type(value).__name__}: {exc}") from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def decode(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError) as exc:
        raise MalformedStoredValueError(f"Malformed stored value {text!r}: {exc}") from exc


def values_equal(a: Any, b: Any) -> bool:
    """Deep equality with JSON semantics.

    Unlike ``==``, booleans never equal numbers (``True != 1``), and tuples
    compare like lists since both encode to JSON arrays.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, int | float) and isinstance(b, int | float):
        return a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, list | tuple) and isinstance(b, list | tuple):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if type(a) is not type(b):
        return False
    return a == b
