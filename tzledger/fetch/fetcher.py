#!filepath: tzledger/fetch/fetcher.py
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from tzledger.utils.errors import StoredDataError
from tzledger.utils.logger import logs
from tzledger.utils.rate_limiter import SlidingWindowRateLimiter
from tzledger.utils.retry import AsyncRetry, RetryPolicy


@dataclass(frozen=True)
class FetchResponse:
    """
    一次 HTTP 读取的完整结果（body 已读完，脱离 session 生命周期）
    """
    url: str
    status: int
    reason: str = ""
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise StoredDataError(
                f"invalid JSON from {redact(self.url)}: {self.body[:200]!r}"
            ) from e


Transport = Callable[[str], Awaitable[FetchResponse]]


def redact(url: str) -> str:
    """
    日志里隐藏 apikey
    """
    head, sep, tail = url.partition("apikey=")
    if not sep:
        return url
    rest = tail.split("&", 1)
    return head + sep + "***" + ("&" + rest[1] if len(rest) > 1 else "")


class AiohttpTransport:
    """
    aiohttp GET transport.

    连接级错误（aiohttp.ClientError / asyncio.TimeoutError）原样抛出，不重试。
    """

    def __init__(self, session: aiohttp.ClientSession, timeout_s: float = 60.0):
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)

    async def __call__(self, url: str) -> FetchResponse:
        async with self.session.get(url, timeout=self.timeout) as resp:
            body = await resp.read()
            return FetchResponse(
                url=url,
                status=resp.status,
                reason=resp.reason or "",
                body=body,
            )


class Fetcher:
    """
    Resilient Fetcher

    - 每次请求前 limiter.acquire()（包括每次重试）
    - 状态码可重试（429 / 503）且有剩余次数 → 抖动退避后重试
    - 重试耗尽 → 返回最后一次失败响应，调用方自行检查 status
    - 传输层异常 → 直接抛出
    """

    def __init__(
        self,
        transport: Transport,
        limiter: SlidingWindowRateLimiter,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.limiter = limiter
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self.requests = 0

    async def _attempt(self, url: str) -> FetchResponse:
        await self.limiter.acquire()
        self.requests += 1
        return await self.transport(url)

    async def fetch(self, url: str, max_retries: Optional[int] = None) -> FetchResponse:
        logs.debug(f"[Fetcher] GET {redact(url)}")
        return await AsyncRetry.run(
            self._attempt,
            url,
            policy=self.policy,
            should_retry=lambda r: self.policy.is_retryable(r.status),
            describe=lambda r: f"{redact(r.url)} {r.status} {r.reason}",
            max_retries=max_retries,
            sleep=self._sleep,
        )
