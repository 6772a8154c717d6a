"""
Unit tests for delayed and debounced calls.
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from pagewindow.scheduling import DelayedCall, Debouncer


@pytest.mark.unit
class TestDelayedCall:
    """Timer semantics of DelayedCall."""

    @pytest.mark.asyncio
    async def test_runs_after_delay(self):
        fn = AsyncMock(return_value="done")
        call = DelayedCall(10, fn, 1, key="value").start()

        assert call.pending is True
        assert await call.wait() == "done"
        assert call.fired is True
        fn.assert_awaited_once_with(1, key="value")

    @pytest.mark.asyncio
    async def test_cancel_before_firing(self):
        fn = AsyncMock()
        call = DelayedCall(50, fn).start()

        assert call.cancel() is True
        assert await call.wait() is None
        fn.assert_not_awaited()
        assert call.cancel() is False

    @pytest.mark.asyncio
    async def test_cannot_cancel_after_firing(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()
            return 7

        call = DelayedCall(0, slow).start()
        await started.wait()

        assert call.cancel() is False
        release.set()
        assert await call.wait() == 7

    @pytest.mark.asyncio
    async def test_failures_are_logged(self, caplog):
        caplog.set_level(logging.ERROR, logger="pagewindow")
        call = DelayedCall(0, AsyncMock(side_effect=RuntimeError("boom"))).start()

        with pytest.raises(RuntimeError):
            await call.wait()
        await asyncio.sleep(0)

        assert "Scheduled call failed" in caplog.text

    def test_wait_without_start(self):
        call = DelayedCall(0, AsyncMock())
        assert call.pending is False
        assert asyncio.run(call.wait()) is None


@pytest.mark.unit
class TestDebouncer:
    """Coalescing of rapid calls."""

    @pytest.mark.asyncio
    async def test_only_last_call_runs(self):
        fn = AsyncMock()
        debounced = Debouncer(fn, wait_ms=20)

        first = debounced(direction="tailward")
        second = debounced(direction="headward")
        await second.wait()

        fn.assert_awaited_once_with(direction="headward")
        assert first.fired is False
        assert debounced.scheduled is second

    @pytest.mark.asyncio
    async def test_cancel(self):
        fn = AsyncMock()
        debounced = Debouncer(fn, wait_ms=20)
        debounced()

        assert debounced.pending is True
        assert debounced.cancel() is True
        await asyncio.sleep(0.04)
        fn.assert_not_awaited()

    def test_cancel_without_schedule(self):
        assert Debouncer(AsyncMock(), wait_ms=1).cancel() is False
