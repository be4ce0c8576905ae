"""Cooperative timers on the asyncio event loop.

Both helpers take an injectable ``sleep`` coroutine so tests can drive
time without waiting on the wall clock.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


async def maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until stopped.

    Exceptions from ``callback`` are logged and the loop continues; the
    next tick retries.  ``stop`` cancels the underlying task and is safe to
    call more than once.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        interval: float,
        *,
        sleep: Sleep = asyncio.sleep,
        run_immediately: bool = False,
        name: str = "periodic-task",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._callback = callback
        self._interval = interval
        self._sleep = sleep
        self._run_immediately = run_immediately
        self._name = name
        self._task: asyncio.Task | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        """Stop and wait for the loop to finish unwinding."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        if self._run_immediately:
            await self._tick()
        while True:
            await self._sleep(self._interval)
            await self._tick()

    async def _tick(self) -> None:
        try:
            await maybe_await(self._callback())
        except Exception:
            logger.warning("%s tick failed", self._name, exc_info=True)


class Debouncer:
    """Delay a call until ``delay`` seconds pass without another call.

    Each :meth:`call` cancels the pending one, so only the last call in a
    burst runs.
    """

    def __init__(self, delay: float, *, sleep: Sleep = asyncio.sleep) -> None:
        self._delay = delay
        self._sleep = sleep
        self._pending: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> asyncio.Task:
        """Schedule ``fn(*args, **kwargs)``; returns the task (cancelled if superseded)."""
        self.cancel()
        task = asyncio.get_running_loop().create_task(self._fire(fn, args, kwargs))
        self._pending = task
        return task

    def cancel(self) -> None:
        task, self._pending = self._pending, None
        if task is not None and not task.done():
            task.cancel()

    async def _fire(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        await self._sleep(self._delay)
        return await maybe_await(fn(*args, **kwargs))
