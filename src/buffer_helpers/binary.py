"""Binary content detection.

Heuristic over the first bytes of a buffer:

- empty data is text
- a UTF-8 or UTF-16 byte order mark means text, a PDF header means binary
- a NUL byte means binary
- more than 10% control bytes means binary
- data that is not valid UTF-8 is binary
"""

from __future__ import annotations

import asyncio
import codecs
from typing import Any

from .completion import for_future

__all__ = ["is_binary_content", "is_binary_content_sync", "SAMPLE_SIZE"]

SAMPLE_SIZE = 512

_TEXT_BOMS = (codecs.BOM_UTF8, codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)

# Control bytes that do not show up in text (tab, newlines, form feed etc. do)
_SUSPICIOUS = frozenset(range(0, 7)) | frozenset(range(15, 32))


def is_binary_content_sync(data: Any) -> bool:
    """Check if data is binary or text content.

    Args:
        data: bytes-like data

    Raises:
        TypeError: data is not bytes-like
    """
    sample = bytes(memoryview(data)[:SAMPLE_SIZE])
    if not sample:
        return False

    if sample.startswith(_TEXT_BOMS):
        return False
    if sample.startswith(b"%PDF-"):
        return True
    if b"\x00" in sample:
        return True

    suspicious = sum(1 for byte in sample if byte in _SUSPICIOUS)
    if suspicious * 10 > len(sample):
        return True

    # The sample may cut a multi-byte sequence at its end
    try:
        codecs.getincrementaldecoder("utf-8")().decode(sample, final=len(data) <= SAMPLE_SIZE)
    except UnicodeDecodeError:
        return True
    return False


async def is_binary_content(data: Any) -> bool:
    """Check if data is binary or text content, off the event loop."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[bool] = loop.create_future()
    completed = for_future(future)

    def checked(task: asyncio.Future[bool]) -> None:
        if task.cancelled():
            completed(asyncio.CancelledError())
        elif task.exception() is not None:
            completed(task.exception())
        else:
            completed(None, task.result())

    try:
        loop.run_in_executor(None, is_binary_content_sync, data).add_done_callback(checked)
    except Exception as e:
        completed(e)

    return await future
