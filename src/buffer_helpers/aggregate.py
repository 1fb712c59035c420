"""Stream aggregation.

read_all() consumes a readable stream into one bytes object. Listeners are
attached synchronously, so chunks pushed right after the call are not lost,
and all of them are removed again on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .completion import for_future
from .config import get_config
from .events import try_remove_listener
from .streams import as_readable_stream
from .strings import normalize_encoding

__all__ = ["read_all", "aggregate"]

logger = logging.getLogger(__name__)


def read_all(stream: Any, encoding: str | None = None) -> asyncio.Future[bytes | None]:
    """Read the whole content of a stream.

    Must be called while an event loop is running.

    Args:
        stream: An emitter stream (on/once/remove_listener), an
            asyncio.StreamReader or an async iterable of chunks
        encoding: Encoding for str chunks (blank = default)

    Returns:
        Future with the content. A None stream resolves to None,
        not to an empty buffer.

    The future fails with the stream's own error if it emits ``error``
    before ``end``.
    """
    encoding = normalize_encoding(encoding) or get_config().default_encoding

    future: asyncio.Future[bytes | None] = asyncio.get_running_loop().create_future()

    if stream is None:
        future.set_result(None)
        return future

    source = as_readable_stream(stream)
    if source is None:
        source = stream
    adapted = source is not stream

    buffer = bytearray()

    def remove_listeners() -> None:
        try_remove_listener(source, "data", on_data)
        try_remove_listener(source, "end", on_end)
        try_remove_listener(source, "error", on_error)
        if adapted:
            # Stops the pump task of the adapter created here
            source.destroy()

    completed = for_future(future, on_complete=remove_listeners)

    def on_error(error: BaseException | None = None) -> None:
        if error:
            completed(error)

    def on_data(chunk: bytes | str) -> None:
        try:
            if completed.has_fired or not chunk:
                return

            if isinstance(chunk, str):
                chunk = chunk.encode(encoding)

            buffer.extend(chunk)
        except Exception as e:
            completed(e)

    def on_end(*args: Any) -> None:
        logger.debug(f"Stream ended after {len(buffer)} bytes")
        completed(None, bytes(buffer))

    def on_cancelled(fut: asyncio.Future[bytes | None]) -> None:
        # Caller gave up waiting, release the listeners anyway
        if fut.cancelled():
            completed(asyncio.CancelledError())

    future.add_done_callback(on_cancelled)

    try:
        source.on("error", on_error)
        source.once("end", on_end)
        source.on("data", on_data)
    except Exception as e:
        completed(e)

    return future


aggregate = read_all
