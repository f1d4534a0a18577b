"""
Polling Timer Tests
===================

Tests for AsyncioTimer, run on a real event loop with short periods.
"""

import asyncio

import pytest

from scrollstitch.session.timer import AsyncioTimer


def _run(coro):
    return asyncio.run(coro)


class TestAsyncioTimer:
    """Tests for AsyncioTimer."""

    def test_fires_repeatedly_until_stopped(self):
        async def scenario():
            calls = []
            timer = AsyncioTimer()
            timer.start(10, lambda: calls.append(1))
            await asyncio.sleep(0.1)
            timer.stop()
            fired = len(calls)
            await asyncio.sleep(0.05)
            return fired, len(calls), timer

        fired, after_stop, timer = _run(scenario())
        assert fired >= 2
        assert after_stop == fired
        assert not timer.is_active
        assert timer.ticks == fired

    def test_restart_replaces_callback(self):
        async def scenario():
            first, second = [], []
            timer = AsyncioTimer()
            timer.start(10, lambda: first.append(1))
            await asyncio.sleep(0.05)
            timer.start(10, lambda: second.append(1))
            count = len(first)
            await asyncio.sleep(0.05)
            timer.stop()
            return count, len(first), len(second)

        count_before, count_after, second = _run(scenario())
        assert count_before == count_after
        assert second >= 1

    def test_callback_errors_keep_ticking(self):
        async def scenario():
            calls = []

            def failing():
                calls.append(1)
                raise RuntimeError("tick failed")

            timer = AsyncioTimer()
            timer.start(10, failing)
            await asyncio.sleep(0.08)
            timer.stop()
            return len(calls)

        assert _run(scenario()) >= 2

    def test_stop_from_callback(self):
        async def scenario():
            calls = []
            timer = AsyncioTimer()

            def once():
                calls.append(1)
                timer.stop()

            timer.start(10, once)
            await asyncio.sleep(0.08)
            return len(calls), timer.is_active

        calls, active = _run(scenario())
        assert calls == 1
        assert not active

    def test_restart_from_callback_uses_new_period(self):
        async def scenario():
            calls = []
            timer = AsyncioTimer()

            def slow_down():
                calls.append(1)
                timer.start(1000, slow_down)

            timer.start(10, slow_down)
            await asyncio.sleep(0.1)
            timer.stop()
            return len(calls)

        assert _run(scenario()) == 1

    @pytest.mark.parametrize("interval", [0, -5])
    def test_invalid_interval(self, interval):
        timer = AsyncioTimer()
        with pytest.raises(ValueError):
            timer.start(interval, lambda: None)
        assert not timer.is_active

    def test_start_without_running_loop(self):
        timer = AsyncioTimer()
        with pytest.raises(RuntimeError):
            timer.start(10, lambda: None)
        assert not timer.is_active

    def test_stop_when_idle(self):
        timer = AsyncioTimer()
        timer.stop()
        assert not timer.is_active
        assert timer.ticks == 0
