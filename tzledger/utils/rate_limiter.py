#!filepath: tzledger/utils/rate_limiter.py
from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque

from tzledger.utils.logger import logs


class SlidingWindowRateLimiter:
    """
    滑动窗口限流器（asyncio 协作式）

    - 记录每次放行的时间戳
    - 窗口内时间戳数量 >= max_calls 时挂起（定时复查，不忙等）
    - 检查与记录之间没有 await：单线程事件循环下天然原子，无需加锁

    多个调用方共享同一个实例即共享同一配额；不同实例互不影响。
    """

    def __init__(
        self,
        max_calls: int = 30,
        window_s: float = 60.0,
        poll_interval_s: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_calls < 1:
            raise ValueError(f"max_calls must be >= 1 (got {max_calls})")
        if window_s <= 0:
            raise ValueError(f"window_s must be > 0 (got {window_s})")

        self.max_calls = max_calls
        self.window_s = window_s
        self.poll_interval_s = poll_interval_s
        self._clock = clock
        self._sleep = sleep
        self._calls: Deque[float] = deque()

    # --------------------------------------------------
    def _prune(self, now: float) -> None:
        cutoff = now - self.window_s
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()

    def in_window(self) -> int:
        self._prune(self._clock())
        return len(self._calls)

    def timestamps(self) -> list[float]:
        return list(self._calls)

    # --------------------------------------------------
    async def acquire(self) -> None:
        now = self._clock()
        self._prune(now)

        while len(self._calls) >= self.max_calls:
            until_free = self._calls[0] + self.window_s - now
            wait = max(0.0, min(self.poll_interval_s, until_free))
            logs.info(
                f"[RateLimiter] waiting for rate limit... "
                f"{len(self._calls)}/{self.max_calls} in window, sleep {wait:.2f}s"
            )
            await self._sleep(wait)
            now = self._clock()
            self._prune(now)

        self._calls.append(now)
