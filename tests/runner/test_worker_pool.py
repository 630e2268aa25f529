"""Tests for the bounded worker pool."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from signalbot.runner.pool import BoundedWorkerPool


@pytest.mark.asyncio
async def test_results_in_input_order():
    pool = BoundedWorkerPool(concurrency=2, pause_seconds=0)

    async def double(x):
        await asyncio.sleep(0.01 * (5 - x))
        return x * 2

    assert await pool.run(range(5), double) == [0, 2, 4, 6, 8]


@pytest.mark.asyncio
async def test_concurrency_bound():
    pool = BoundedWorkerPool(concurrency=2, pause_seconds=0)
    active = 0
    peak = 0

    async def worker(_):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    await pool.run(range(7), worker)

    assert peak == 2


@pytest.mark.asyncio
async def test_pause_holds_permit():
    sleep = AsyncMock()
    pool = BoundedWorkerPool(concurrency=2, pause_seconds=1.5, sleep=sleep)

    await pool.run(range(3), AsyncMock(return_value=None))

    assert sleep.await_count == 3
    sleep.assert_awaited_with(1.5)


@pytest.mark.asyncio
async def test_errors_do_not_cancel_siblings():
    pool = BoundedWorkerPool(concurrency=2, pause_seconds=0)

    async def worker(x):
        if x == 1:
            raise ValueError("boom")
        return x

    results = await pool.run([0, 1, 2], worker)

    assert results[0] == 0
    assert isinstance(results[1], ValueError)
    assert results[2] == 2


def test_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        BoundedWorkerPool(concurrency=0)
