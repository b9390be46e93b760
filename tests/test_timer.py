import asyncio
import time

import pytest

from bftlab.timer import Timer


async def _finished_within(task, seconds):
    done, _ = await asyncio.wait({task}, timeout=seconds)
    return task in done


@pytest.mark.asyncio
async def test_schedule():
    timer = Timer(100)
    now = time.monotonic()
    pending = asyncio.ensure_future(timer.wait())
    assert not await _finished_within(pending, 0.05)
    await timer
    assert await _finished_within(pending, 1.0)
    assert pending.exception() is None
    assert time.monotonic() - now > 0.095


@pytest.mark.asyncio
async def test_reset_extends_deadline():
    timer = Timer(10)
    now = time.monotonic()
    timer.reset(200)
    pending = asyncio.ensure_future(timer.wait())
    assert not await _finished_within(pending, 0.1)
    assert await _finished_within(pending, 2.0)
    assert pending.exception() is None
    assert time.monotonic() - now > 0.19


@pytest.mark.asyncio
async def test_reset_shortens_deadline_while_waiting():
    timer = Timer(10_000)
    now = time.monotonic()
    task = asyncio.ensure_future(timer.wait())
    assert not await _finished_within(task, 0.02)
    timer.reset(30)
    assert await _finished_within(task, 2.0)
    assert task.exception() is None
    assert time.monotonic() - now < 2


@pytest.mark.asyncio
async def test_elapsed_timer_completes_again_immediately():
    timer = Timer(20)
    await timer
    now = time.monotonic()
    again = asyncio.ensure_future(timer.wait())
    assert await _finished_within(again, 0.5)
    assert time.monotonic() - now < 0.05
    timer.reset(500)
    pending = asyncio.ensure_future(timer.wait())
    assert not await _finished_within(pending, 0.05)
    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending
    assert pending.cancelled()