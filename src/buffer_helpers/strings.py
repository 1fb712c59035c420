"""Safe string coercion helpers."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

__all__ = [
    "to_string_safe",
    "normalize_string",
    "is_empty_string",
    "normalize_encoding",
    "json_default",
]

StringNormalizer = Callable[[str], str]


def json_default(value: Any) -> Any:
    """``default`` hook for json.dumps.

    Dataclasses and other mappings become dicts, iterables become lists,
    other objects are serialized by their attributes and finally by their
    string form.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, Iterable):
        return list(value)
    if _has_custom_str(value):
        return str(value)
    if hasattr(value, "__dict__"):
        return vars(value)
    return "%s" % (value,)


def _has_custom_str(value: Any) -> bool:
    return type(value).__str__ is not object.__str__


def to_string_safe(value: Any, default: str = "") -> str:
    """Return a value as string without ever raising.

    Args:
        value: The value to convert
        default: Result for None

    Returns:
        - str values unchanged
        - the message of an exception
        - str(value) for objects with their own __str__
        - JSON for anything else
    """
    if isinstance(value, str):
        return value

    if value is None:
        return str(default)

    try:
        if isinstance(value, BaseException):
            return str(value)

        if isinstance(value, (int, float, complex)):
            return str(value)

        if _has_custom_str(value):
            return str(value)

        return json.dumps(value, default=json_default)
    except Exception:
        pass

    try:
        return "%s" % (value,)
    except Exception:
        return type(value).__name__


def normalize_string(value: Any, normalizer: StringNormalizer | None = None) -> str:
    """Normalize a value as string so that it is comparable.

    The default normalizer lower-cases and strips.
    """
    if normalizer is None:
        normalizer = lambda s: s.lower().strip()  # noqa: E731

    return normalizer(to_string_safe(value))


def is_empty_string(value: Any) -> bool:
    """Check if the string form of a value is empty or whitespace only."""
    return to_string_safe(value).strip() == ""


def normalize_encoding(encoding: Any) -> str | None:
    """Normalize an encoding name, None means "use the default".

    Names are not validated here. An unknown name surfaces as a
    LookupError from the encoding step.
    """
    encoding = normalize_string(encoding)
    if encoding == "":
        return None
    return encoding
