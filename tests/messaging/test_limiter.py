"""Tests for MessageRateLimiter."""

import asyncio
import pytest
from messaging.limiter import MessageRateLimiter


@pytest.mark.asyncio
async def test_execute_returns_result_in_order():
    limiter = MessageRateLimiter(rate_limit=100, rate_window=1.0)
    calls = []

    async def send(i):
        calls.append(i)
        return f"msg_{i}"

    results = [await limiter.execute(lambda i=i: send(i)) for i in range(5)]

    assert results == [f"msg_{i}" for i in range(5)]
    assert calls == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_pause_delays_sends():
    limiter = MessageRateLimiter(rate_limit=100, rate_window=1.0)
    loop = asyncio.get_running_loop()

    limiter.pause(0.05)
    assert limiter.is_paused is True

    started = loop.time()
    await limiter.execute(lambda: asyncio.sleep(0))

    assert loop.time() - started >= 0.04
    assert limiter.is_paused is False


@pytest.mark.asyncio
async def test_errors_propagate():
    limiter = MessageRateLimiter()

    async def fail():
        raise RuntimeError("send failed")

    with pytest.raises(RuntimeError, match="send failed"):
        await limiter.execute(fail)
