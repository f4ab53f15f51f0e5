from __future__ import annotations

import asyncio

import pytest

from discord_human_relay.relay.thread_cache import ThreadCache


@pytest.mark.anyio
async def test_cached_value_skips_factory() -> None:
    cache = ThreadCache("question")
    calls = 0

    async def factory() -> str:
        nonlocal calls
        calls += 1
        return "thread-1"

    assert await cache.get_or_create(factory) == "thread-1"
    assert await cache.get_or_create(factory) == "thread-1"
    assert calls == 1
    assert cache.peek() == "thread-1"


@pytest.mark.anyio
async def test_concurrent_first_use_creates_once() -> None:
    cache = ThreadCache("question")
    release = asyncio.Event()
    calls = 0

    async def factory() -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return f"thread-{calls}"

    waiters = [asyncio.create_task(cache.get_or_create(factory)) for _ in range(5)]
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters)

    assert calls == 1
    assert results == ["thread-1"] * 5


@pytest.mark.anyio
async def test_concurrent_callers_share_failure_then_retry() -> None:
    cache = ThreadCache("log")
    release = asyncio.Event()
    calls = 0

    async def failing_factory() -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        raise RuntimeError("create failed")

    waiters = [
        asyncio.create_task(cache.get_or_create(failing_factory)) for _ in range(3)
    ]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert calls == 1
    assert all(isinstance(result, RuntimeError) for result in results)
    assert len({id(result) for result in results}) == 1
    assert cache.peek() is None

    async def working_factory() -> str:
        return "thread-2"

    assert await cache.get_or_create(working_factory) == "thread-2"


@pytest.mark.anyio
async def test_cancelled_waiter_does_not_abort_shared_creation() -> None:
    cache = ThreadCache("question")
    release = asyncio.Event()

    async def factory() -> str:
        await release.wait()
        return "thread-9"

    first = asyncio.create_task(cache.get_or_create(factory))
    second = asyncio.create_task(cache.get_or_create(factory))
    await asyncio.sleep(0)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first
    release.set()

    assert await second == "thread-9"
    assert cache.peek() == "thread-9"
