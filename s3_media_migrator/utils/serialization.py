"""Helpers for the PHP-serialized values WordPress keeps in meta and option rows."""

from __future__ import annotations

import re
from typing import Any

import phpserialize

_SERIALIZED_RE = re.compile(r"^(?:N;|b:[01];|i:-?\d+;|d:[^;]+;|s:\d+:\".*\";|a:\d+:\{.*\}|O:\d+:\".*\":\d+:\{.*\})$", re.S)


def is_serialized(value: Any) -> bool:
    """Return True if ``value`` looks like a PHP-serialized string."""
    if not isinstance(value, (str, bytes)):
        return False
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return bool(_SERIALIZED_RE.match(value.strip()))


def serialize(value: Any) -> str:
    """Serialize a Python value the way PHP's ``serialize()`` would."""
    return phpserialize.dumps(value).decode("utf-8")


def unserialize(raw: str | bytes) -> Any:
    """Unserialize a PHP-serialized string.

    Raises:
        ValueError: If ``raw`` is not valid serialized data.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    return phpserialize.loads(
        raw, decode_strings=True, object_hook=phpserialize.phpobject
    )


def maybe_unserialize(value: Any) -> Any:
    """Unserialize ``value`` if it is serialized, otherwise return it unchanged."""
    if is_serialized(value):
        return unserialize(value)
    return value


def as_list(value: Any) -> list[Any]:
    """Turn a PHP list (unserialized as an int-keyed dict) into a Python list."""
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, (list, tuple)):
        return list(value)
    return []
