"""CompletionGuard tests.

Test coverage:
- First call wins (success or failure)
- Later calls are inert
- Cleanup hook runs exactly once
- Future-backed guards
"""

from __future__ import annotations

import asyncio

import pytest

from buffer_helpers.completion import CompletionGuard, create_completed_action, for_future


class Recorder:
    """Counts callback invocations."""

    def __init__(self) -> None:
        self.resolved: list = []
        self.rejected: list = []
        self.completions = 0

    def resolve(self, value) -> None:
        self.resolved.append(value)

    def reject(self, error) -> None:
        self.rejected.append(error)

    def on_complete(self) -> None:
        self.completions += 1


class TestCompletionGuard:
    """Single-settlement behavior."""

    def test_success_first(self):
        """Success followed by error: only success is delivered."""
        rec = Recorder()
        completed = CompletionGuard(rec.resolve, rec.reject)

        completed(None, 42)
        completed(ValueError("late"))

        assert rec.resolved == [42]
        assert rec.rejected == []
        assert completed.has_fired is True

    def test_error_first(self):
        """Error followed by success: only the error is delivered."""
        rec = Recorder()
        completed = CompletionGuard(rec.resolve, rec.reject)
        error = RuntimeError("boom")

        completed(error)
        completed(None, "ignored")

        assert rec.rejected == [error]
        assert rec.resolved == []

    def test_repeated_success_is_inert(self):
        rec = Recorder()
        completed = create_completed_action(rec.resolve, rec.reject)

        for i in range(5):
            completed(None, i)

        assert rec.resolved == [0]

    def test_not_fired_initially(self):
        completed = CompletionGuard(None)
        assert completed.has_fired is False

    def test_missing_reject_is_silent(self):
        """Error without reject callback still consumes the guard."""
        rec = Recorder()
        completed = CompletionGuard(rec.resolve)

        completed(OSError("no reject"))
        completed(None, 1)

        assert rec.resolved == []
        assert completed.has_fired is True

    def test_none_result(self):
        rec = Recorder()
        completed = CompletionGuard(rec.resolve, rec.reject)

        completed(None)

        assert rec.resolved == [None]

    def test_on_complete_runs_once_before_callback(self):
        order: list[str] = []
        completed = CompletionGuard(
            lambda value: order.append("resolve"),
            lambda error: order.append("reject"),
            on_complete=lambda: order.append("cleanup"),
        )

        completed(None, 1)
        completed(ValueError("x"))
        completed(None, 2)

        assert order == ["cleanup", "resolve"]


class TestForFuture:
    """Guards wired to asyncio futures."""

    @pytest.mark.asyncio
    async def test_resolves_future(self):
        future = asyncio.get_running_loop().create_future()
        completed = for_future(future)

        completed(None, b"data")
        completed(ValueError("late"))

        assert await future == b"data"

    @pytest.mark.asyncio
    async def test_rejects_future(self):
        future = asyncio.get_running_loop().create_future()
        completed = for_future(future)
        error = OSError("boom")

        completed(error)
        completed(None, b"late")

        with pytest.raises(OSError) as exc_info:
            await future
        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_cancelled_future_is_left_alone(self):
        future = asyncio.get_running_loop().create_future()
        rec = Recorder()
        completed = for_future(future, on_complete=rec.on_complete)

        future.cancel()
        completed(None, b"data")

        assert future.cancelled()
        assert rec.completions == 1
