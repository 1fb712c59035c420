"""Readable streams.

Two flavours share one event interface (``data``, ``end``, ``error``,
``close``):

- ReadableStream: in-memory stream fed by push()/end()/destroy()
- ReaderStream: pumps an asyncio.StreamReader or an async iterable

Both start paused and begin flowing when the first ``data`` listener is
attached, so no chunk is lost before a consumer is ready.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from .events import EventEmitter, Listener

__all__ = [
    "ReadableStream",
    "ReaderStream",
    "is_readable_stream",
    "as_readable_stream",
    "is_stream_source",
    "DEFAULT_CHUNK_SIZE",
]

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


class ReadableStream(EventEmitter):
    """In-memory readable stream.

    Example:
        stream = ReadableStream()
        stream.on("data", chunks.append)
        stream.push(b"ab")
        stream.end()
    """

    def __init__(self) -> None:
        super().__init__()
        self._queue: deque[bytes | str] = deque()
        self._flowing = False
        self._ended = False
        self._end_emitted = False
        self._destroyed = False

    @property
    def readable(self) -> bool:
        """False once ``end`` was emitted or the stream was destroyed.

        An ended stream with queued chunks stays readable until a consumer
        has drained it.
        """
        return not (self._end_emitted or self._destroyed)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def push(self, chunk: bytes | str) -> None:
        """Emit a chunk, or queue it while the stream is paused."""
        if self._ended or self._destroyed:
            raise RuntimeError("push() after end of stream")

        if self._flowing:
            self.emit("data", chunk)
        else:
            self._queue.append(chunk)

    def end(self) -> None:
        """Signal that no more data will be pushed."""
        if self._ended or self._destroyed:
            return
        self._ended = True

        if self._flowing and not self._queue:
            self._emit_end()

    def destroy(self, error: BaseException | None = None) -> None:
        """Tear the stream down, emitting ``error`` first if given."""
        if self._destroyed:
            return
        self._destroyed = True
        self._queue.clear()

        if error is not None:
            self.emit("error", error)
        self.emit("close")

    def pause(self) -> None:
        self._flowing = False

    def resume(self) -> None:
        """Switch to flowing mode and flush queued chunks."""
        if self._flowing or self._destroyed:
            return
        self._flowing = True

        while self._queue and self._flowing and not self._destroyed:
            self.emit("data", self._queue.popleft())

        if self._ended and self._flowing and not self._queue:
            self._emit_end()

    def _emit_end(self) -> None:
        if self._end_emitted:
            return
        self._end_emitted = True
        self.emit("end")
        if not self._destroyed:
            self.emit("close")

    def _on_listener_added(self, event: str, listener: Listener) -> None:
        if event == "data":
            self.resume()


class ReaderStream(ReadableStream):
    """Readable stream over an asyncio pull source.

    Accepts an asyncio.StreamReader (or any object with ``async read(n)``)
    or an async iterable of chunks. A pump task is started on the running
    loop when the stream starts flowing. EOF emits ``end``, a read failure
    emits ``error``.

    Attributes:
        chunk_size: Bytes requested per read() call
    """

    def __init__(self, source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        super().__init__()
        self._source = source
        self.chunk_size = chunk_size
        self._task: asyncio.Task[None] | None = None

    def resume(self) -> None:
        super().resume()
        if self._task is None and self._flowing and not self._destroyed:
            self._task = asyncio.get_running_loop().create_task(self._pump())

    def destroy(self, error: BaseException | None = None) -> None:
        task = self._task
        super().destroy(error)
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def _pump(self) -> None:
        try:
            async for chunk in self._iter_chunks():
                self.push(chunk)
                # A data listener may have torn the stream down
                if self._destroyed:
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"Reader stream failed: {e!r}")
            self.destroy(e)
            return

        self.end()

    async def _iter_chunks(self) -> AsyncIterator[bytes | str]:
        read = getattr(self._source, "read", None)
        if read is not None and inspect.iscoroutinefunction(read):
            while True:
                chunk = await read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
            return

        async for chunk in self._source:
            yield chunk


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def is_readable_stream(value: Any) -> bool:
    """Check if a value is an event-emitting readable stream."""
    if value is None or isinstance(value, type):
        return False

    for name in ("on", "once", "remove_listener"):
        if not callable(getattr(value, name, None)):
            return False

    return getattr(value, "readable", True) is not False


def _is_pull_source(value: Any) -> bool:
    if isinstance(value, asyncio.StreamReader):
        return True
    if isinstance(value, type):
        return False
    if inspect.iscoroutinefunction(getattr(value, "read", None)):
        return True
    return isinstance(value, AsyncIterable)


def is_stream_source(value: Any) -> bool:
    """Check if a value is a readable stream or an asyncio pull source."""
    return is_readable_stream(value) or _is_pull_source(value)


def as_readable_stream(value: Any) -> ReadableStream | Any | None:
    """Return a value as readable stream, or None if it is none.

    Emitter streams are returned unchanged; asyncio pull sources are
    wrapped in a ReaderStream.
    """
    if is_readable_stream(value):
        return value
    if _is_pull_source(value):
        return ReaderStream(value)
    return None
