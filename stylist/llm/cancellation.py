from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from stylist.llm.errors import RequestCancelled

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation shared between a caller and the provider calls it started."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled("request cancelled")

    async def guard(self, aw: Awaitable[T]) -> T:
        """Await ``aw`` unless the token fires first, in which case ``aw`` is cancelled."""

        if self.cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise RequestCancelled("request cancelled")
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
        if task in done:
            return task.result()
        # let the aborted call unwind (closes sockets) before reporting
        await asyncio.wait({task})
        raise RequestCancelled("request cancelled")


async def guarded(aw: Awaitable[T], token: Optional[CancellationToken]) -> T:
    if token is None:
        return await aw
    return await token.guard(aw)
