"""Tests for the polling loop."""

import asyncio

import pytest

from gemclaw.infrastructure.poll_loop import start_poll_loop


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_ticks_repeatedly(self):
        calls = 0

        async def tick():
            nonlocal calls
            calls += 1

        loop = start_poll_loop("Test", 0.001, tick)
        await asyncio.sleep(0.05)
        loop.stop()
        await loop.join()
        assert calls >= 2
        assert loop.ticks == calls

    @pytest.mark.asyncio
    async def test_error_does_not_stop_loop(self):
        calls = 0

        async def tick():
            nonlocal calls
            calls += 1
            raise RuntimeError("tick failed")

        loop = start_poll_loop("Test", 0.001, tick)
        await asyncio.sleep(0.05)
        loop.stop()
        await loop.join()
        assert calls >= 2

    @pytest.mark.asyncio
    async def test_stop_interrupts_sleep(self):
        async def tick():
            pass

        loop = start_poll_loop("Test", 60, tick)
        await asyncio.sleep(0)
        loop.stop()
        await asyncio.wait_for(loop.join(), timeout=1)
        assert loop.stopped

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_tick(self):
        started = asyncio.Event()
        release = asyncio.Event()
        finished = []

        async def tick():
            started.set()
            await release.wait()
            finished.append(True)

        loop = start_poll_loop("Test", 60, tick)
        await started.wait()
        loop.stop()
        release.set()
        await loop.join()
        assert finished == [True]
        assert loop.ticks == 1
