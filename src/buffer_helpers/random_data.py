"""Random bytes."""

from __future__ import annotations

import asyncio
import os
from typing import Any

from .completion import for_future
from .strings import to_string_safe

__all__ = ["random_bytes"]


async def random_bytes(size: Any) -> bytes:
    """Generate cryptographically strong random bytes off the event loop.

    Args:
        size: Number of bytes, anything whose string form is an integer

    Raises:
        ValueError: size is not an integer or is negative
    """
    size = int(to_string_safe(size).strip())
    if size < 0:
        raise ValueError(f"size must not be negative: {size}")

    loop = asyncio.get_running_loop()
    future: asyncio.Future[bytes] = loop.create_future()
    completed = for_future(future)

    def generated(task: asyncio.Future[bytes]) -> None:
        if task.cancelled():
            completed(asyncio.CancelledError())
        elif task.exception() is not None:
            completed(task.exception())
        else:
            completed(None, task.result())

    loop.run_in_executor(None, os.urandom, size).add_done_callback(generated)

    return await future
