#!filepath: tzledger/utils/retry.py
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, TypeVar

from tzledger.utils.logger import logs

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Status-based retry policy.

    - max_retries    : 最多额外重试次数（不含首次请求）
    - base_delay_s   : 固定退避
    - jitter_s       : 随机抖动上限
    - retry_statuses : 可重试的 HTTP 状态码（限流 / 服务不可用）
    """

    max_retries: int = 30
    base_delay_s: float = 20.0
    jitter_s: float = 1.0
    retry_statuses: Tuple[int, ...] = (429, 503)

    def backoff(self) -> float:
        return self.base_delay_s + random.uniform(0, self.jitter_s)

    def is_retryable(self, status: int) -> bool:
        return status in self.retry_statuses


class AsyncRetry:
    """
    异步重试工具：按“结果”判断是否重试，而不是按异常。

    - 结果可重试且仍有额度 → 退避后重试
    - 额度耗尽 → 返回最后一次（失败的）结果，由调用方检查
    - func 抛出的异常不捕获，直接向上传播
    """

    @staticmethod
    async def run(
        func: Callable[..., Awaitable[T]],
        *args,
        policy: RetryPolicy,
        should_retry: Callable[[T], bool],
        describe: Callable[[T], str] = str,
        max_retries: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        **kwargs,
    ) -> T:
        remaining = policy.max_retries if max_retries is None else max_retries

        while True:
            result = await func(*args, **kwargs)

            if not should_retry(result):
                return result

            if remaining <= 0:
                logs.warning(f"[AsyncRetry] retries exhausted: {describe(result)}")
                return result

            wait = policy.backoff()
            logs.warning(
                f"[AsyncRetry] {describe(result)} | retries left={remaining} | "
                f"waiting {wait:.2f}s"
            )
            await sleep(wait)
            remaining -= 1
