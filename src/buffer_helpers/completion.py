"""Single-settlement completion callbacks.

Every asynchronous operation in this package listens on several event
sources at once (stream data/end/error, process exit, nested awaits).
A CompletionGuard makes sure only the first outcome is delivered.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

__all__ = [
    "CompletionGuard",
    "create_completed_action",
    "for_future",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CompletionGuard(Generic[T]):
    """Wraps a success/failure callback pair so only the first call counts.

    Example:
        future = loop.create_future()
        completed = CompletionGuard(future.set_result, future.set_exception)

        completed(None, b"data")   # resolves the future
        completed(OSError("late"))  # ignored

    Attributes:
        has_fired: True once the guard has been invoked
    """

    __slots__ = ("_resolve", "_reject", "_on_complete", "has_fired")

    def __init__(
        self,
        resolve: Callable[[T], Any] | None,
        reject: Callable[[BaseException], Any] | None = None,
        on_complete: Callable[[], Any] | None = None,
    ) -> None:
        """
        Args:
            resolve: Success callback, receives the result
            reject: Failure callback, receives the error
            on_complete: Runs once before either callback (cleanup hook)
        """
        self._resolve = resolve
        self._reject = reject
        self._on_complete = on_complete
        self.has_fired = False

    def __call__(self, error: BaseException | None, result: T | None = None) -> None:
        if self.has_fired:
            return
        self.has_fired = True

        if self._on_complete is not None:
            self._on_complete()

        if error:
            if self._reject is not None:
                self._reject(error)
        else:
            if self._resolve is not None:
                self._resolve(result)


def create_completed_action(
    resolve: Callable[[T], Any] | None,
    reject: Callable[[BaseException], Any] | None = None,
) -> CompletionGuard[T]:
    """Create a simple 'completed' callback for a pair of callbacks."""
    return CompletionGuard(resolve, reject)


def for_future(
    future: asyncio.Future[T],
    on_complete: Callable[[], Any] | None = None,
) -> CompletionGuard[T]:
    """Create a guard that settles an asyncio future.

    A future that is already done (typically cancelled by the awaiting
    caller) is left untouched.
    """

    def resolve(result: T) -> None:
        if future.done():
            logger.debug("Future already done, dropping result")
            return
        future.set_result(result)

    def reject(error: BaseException) -> None:
        if future.done():
            logger.debug(f"Future already done, dropping error: {error!r}")
            return
        future.set_exception(error)

    return CompletionGuard(resolve, reject, on_complete)
