from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None


class RateLimitStore:
    """Fixed-window counters keyed by client address.

    Advisory only: state lives in this process, so several workers each count
    on their own.
    """

    def __init__(self, sweep_interval_s: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, RateLimitEntry] = {}
        self._clock = clock
        self.sweep_interval_s = sweep_interval_s
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def sweep(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.reset_at < now]
        for k in expired:
            del self._entries[k]
        self._last_sweep = now
        return len(expired)

    def hit(self, identifier: str, max_requests: int = 3, window_s: float = 60.0) -> RateLimitResult:
        now = self._clock()
        if now - self._last_sweep >= self.sweep_interval_s:
            self.sweep()

        key = f"ratelimit:{identifier}"
        entry = self._entries.get(key)
        if entry is None or entry.reset_at < now:
            entry = RateLimitEntry(count=1, reset_at=now + window_s)
            self._entries[key] = entry
            return RateLimitResult(allowed=True, remaining=max_requests - 1, reset_at=entry.reset_at)

        if entry.count >= max_requests:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=entry.reset_at,
                retry_after=max(1, math.ceil(entry.reset_at - now)),
            )

        entry.count += 1
        return RateLimitResult(allowed=True, remaining=max_requests - entry.count, reset_at=entry.reset_at)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    vercel = request.headers.get("x-vercel-forwarded-for")
    if vercel:
        return vercel.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
