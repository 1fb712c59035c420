"""Value to buffer normalization.

as_buffer() turns any value into bytes:

- bytes-like values and None are returned unchanged
- callables are deferred values: they are called with
  ``(encoding, depth, max_depth)``, awaited if needed, and their result is
  normalized again (up to ``max_depth`` times)
- readable streams are read with read_all()
- dicts, lists, tuples and dataclass instances become JSON
- everything else becomes its safe string form
"""

from __future__ import annotations

import dataclasses
import inspect
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .aggregate import read_all
from .config import get_config
from .errors import RecursionLimitError
from .streams import is_stream_source
from .strings import json_default, normalize_encoding, to_string_safe

__all__ = [
    "RecursionState",
    "as_buffer",
    "normalize",
]


_BYTES_TYPES = (bytes, bytearray, memoryview)


@dataclass
class RecursionState:
    """Depth bookkeeping for one normalization call.

    Attributes:
        current_depth: Number of deferred values unwrapped so far
        max_depth: Maximum allowed depth
        encoding: Encoding for text, None = default
    """

    current_depth: int = 0
    max_depth: int = 63
    encoding: str | None = None

    def descend(self) -> None:
        """Account for one unwrapped deferred value."""
        self.current_depth += 1
        self.check()

    def check(self) -> None:
        if self.current_depth > self.max_depth:
            raise RecursionLimitError(self.max_depth, self.current_depth)


def _is_deferred(value: Any) -> bool:
    return callable(value) and not isinstance(value, type)


def _is_structured(value: Any) -> bool:
    if isinstance(value, (Mapping, list, tuple)):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _resolve_max_depth(max_depth: Any) -> int:
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
        return get_config().max_depth
    return max_depth


async def as_buffer(
    value: Any,
    encoding: str | None = None,
    max_depth: int | None = None,
    state: RecursionState | None = None,
) -> bytes | None:
    """Return a value as buffer.

    Args:
        value: The value to convert
        encoding: Custom encoding for strings (blank = default)
        max_depth: Max depth of wrapped deferred values (default 63)
        state: Explicit recursion state, overrides encoding/max_depth

    Returns:
        The bytes, or None if the value resolved to None

    Raises:
        RecursionLimitError: A deferred value chain got too deep
        LookupError: Unknown encoding name
    """
    if state is None:
        state = RecursionState(
            max_depth=_resolve_max_depth(max_depth),
            encoding=normalize_encoding(encoding),
        )
    else:
        state.encoding = normalize_encoding(state.encoding)

    while True:
        state.check()

        if value is None or isinstance(value, _BYTES_TYPES):
            return value

        if _is_deferred(value):
            result = value(state.encoding, state.current_depth, state.max_depth)
            if inspect.isawaitable(result):
                result = await result
            value = result
            state.descend()
            continue

        if is_stream_source(value):
            return await read_all(value, state.encoding)

        text_encoding = state.encoding or get_config().default_encoding

        if _is_structured(value):
            return json.dumps(value, default=json_default).encode(text_encoding)

        return to_string_safe(value).encode(text_encoding)


normalize = as_buffer
