"""
Test module for loglog.core.scheduler
"""

import asyncio

import pytest

from loglog.core.scheduler import AsyncioScheduler


class TestAsyncioScheduler:

    @pytest.mark.asyncio
    async def test_call_later_runs_once(self):
        calls = []
        AsyncioScheduler().call_later(0.01, lambda: calls.append("fired"))

        await asyncio.sleep(0.05)

        assert calls == ["fired"]

    @pytest.mark.asyncio
    async def test_cancelled_call_later_never_runs(self):
        calls = []
        task = AsyncioScheduler().call_later(0.01, lambda: calls.append("fired"))
        task.cancel()

        await asyncio.sleep(0.05)

        assert calls == []
        assert task.cancelled

    @pytest.mark.asyncio
    async def test_call_every_repeats_until_cancelled(self):
        calls = []
        task = AsyncioScheduler().call_every(0.01, lambda: calls.append(1))

        await asyncio.sleep(0.055)
        task.cancel()
        count = len(calls)
        await asyncio.sleep(0.03)

        assert count >= 2
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_interval_alive(self):
        calls = []

        def callback():
            calls.append(1)
            raise RuntimeError("tick failed")

        task = AsyncioScheduler().call_every(0.01, callback)
        await asyncio.sleep(0.045)
        task.cancel()

        assert len(calls) >= 2

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler().call_later(1, lambda: None)
