"""Tests for PeriodicTask and Debouncer."""

import asyncio
import logging

import pytest

from morpheus_rewards.scheduling import Debouncer, PeriodicTask, maybe_await


class _FakeSleep:
    """Records delays and yields once instead of waiting."""

    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def _spin(n: int = 10) -> None:
    for _ in range(n):
        await asyncio.sleep(0)


class TestMaybeAwait:
    @pytest.mark.asyncio
    async def test_plain_and_awaitable(self) -> None:
        async def _coro():
            return 2

        assert await maybe_await(1) == 1
        assert await maybe_await(_coro()) == 2


class TestPeriodicTask:
    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            PeriodicTask(lambda: None, 0)

    @pytest.mark.asyncio
    async def test_ticks_after_each_interval(self) -> None:
        sleep = _FakeSleep()
        ticks = []
        task = PeriodicTask(lambda: ticks.append(len(ticks)), 30.0, sleep=sleep)

        task.start()
        await _spin()
        await task.aclose()

        assert ticks
        assert set(sleep.delays) == {30.0}
        assert task.running is False

    @pytest.mark.asyncio
    async def test_run_immediately(self) -> None:
        ticks = []

        async def _never(delay: float) -> None:
            await asyncio.Event().wait()

        task = PeriodicTask(lambda: ticks.append(1), 5.0, sleep=_never, run_immediately=True)
        task.start()
        await _spin(3)
        assert ticks == [1]
        await task.aclose()

    @pytest.mark.asyncio
    async def test_failing_tick_is_logged_and_retried(self, caplog) -> None:
        calls = []

        async def _flaky() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("rpc hiccup")

        task = PeriodicTask(_flaky, 1.0, sleep=_FakeSleep(), name="flaky")
        with caplog.at_level(logging.WARNING, logger="morpheus_rewards.scheduling"):
            task.start()
            await _spin()
            await task.aclose()

        assert len(calls) >= 2
        assert "flaky tick failed" in caplog.text

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self) -> None:
        task = PeriodicTask(lambda: None, 1.0, sleep=_FakeSleep())
        task.start()
        first = task._task
        task.start()
        assert task._task is first
        task.stop()
        task.stop()
        await _spin(2)
        assert first.cancelled()


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_last_call_wins(self) -> None:
        calls = []
        debouncer = Debouncer(0.5, sleep=_FakeSleep())

        first = debouncer.call(calls.append, "a")
        second = debouncer.call(calls.append, "b")
        assert debouncer.pending is True
        await asyncio.wait({first, second})

        assert first.cancelled()
        assert calls == ["b"]
        assert debouncer.pending is False

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        calls = []
        debouncer = Debouncer(0.5, sleep=_FakeSleep())
        task = debouncer.call(calls.append, "a")
        debouncer.cancel()
        await asyncio.wait({task})
        assert calls == []
