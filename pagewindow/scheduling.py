"""
Delayed and debounced coroutine calls on the running asyncio loop.

Only calls that have not fired yet can be cancelled. Once the delay has
elapsed the wrapped coroutine runs to completion.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from ._logging import logger


class DelayedCall:
    """A single coroutine call scheduled ``delay_ms`` milliseconds ahead."""

    def __init__(
        self,
        delay_ms: float,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ):
        self.delay_ms = delay_ms
        self._fn = fn
        self._args = args
        self._kwargs = kwargs
        self._fired = False
        self._task: asyncio.Task | None = None

    def start(self) -> DelayedCall:
        """Schedules the call. Requires a running event loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
            self._task.add_done_callback(self._on_done)
        return self

    async def _run(self) -> Any:
        await asyncio.sleep(self.delay_ms / 1000)
        self._fired = True
        return await self._fn(*self._args, **self._kwargs)

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Scheduled call failed",
                exc_info=error,
                extra={"call": getattr(self._fn, "__qualname__", repr(self._fn))},
            )

    @property
    def pending(self) -> bool:
        """True while the delay has not elapsed."""
        return self._task is not None and not self._fired and not self._task.done()

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> bool:
        """
        Cancels the call if it has not fired yet.

        Returns:
            True if a pending call was cancelled
        """
        if not self.pending:
            return False
        self._task.cancel()  # type: ignore[union-attr]
        return True

    async def wait(self) -> Any:
        """Awaits the call. Returns None if it was cancelled."""
        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._task.cancelled():
                return None
            raise


class Debouncer:
    """
    Coalesces rapid calls into one call made ``wait_ms`` after the last one.

    Usage:
        debounced = Debouncer(paginator.to_tail, wait_ms=300)
        debounced()
        debounced()  # replaces the first call
    """

    def __init__(self, fn: Callable[..., Awaitable[Any]], wait_ms: float):
        self.fn = fn
        self.wait_ms = wait_ms
        self._scheduled: DelayedCall | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> DelayedCall:
        self.cancel()
        self._scheduled = DelayedCall(self.wait_ms, self.fn, *args, **kwargs).start()
        return self._scheduled

    @property
    def pending(self) -> bool:
        return self._scheduled is not None and self._scheduled.pending

    @property
    def scheduled(self) -> DelayedCall | None:
        return self._scheduled

    def cancel(self) -> bool:
        if self._scheduled is None:
            return False
        return self._scheduled.cancel()
