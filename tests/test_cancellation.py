import asyncio

import pytest

from stylist.llm.cancellation import CancellationToken, guarded
from stylist.llm.errors import RequestCancelled


async def test_guard_returns_result():
    token = CancellationToken()

    async def work():
        return 42

    assert await token.guard(work()) == 42


async def test_guard_raises_when_already_cancelled():
    token = CancellationToken()
    token.cancel()
    with pytest.raises(RequestCancelled):
        await token.guard(asyncio.sleep(10))


async def test_cancel_aborts_pending_work():
    token = CancellationToken()
    finished = False

    async def slow():
        nonlocal finished
        await asyncio.sleep(10)
        finished = True

    task = asyncio.create_task(token.guard(slow()))
    await asyncio.sleep(0)
    token.cancel()
    with pytest.raises(RequestCancelled):
        await task
    assert finished is False


async def test_guarded_without_token():
    async def work():
        return "ok"

    assert await guarded(work(), None) == "ok"
