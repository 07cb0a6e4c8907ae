#!filepath: tzledger/fetch/session.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp

from tzledger.config.etherscan_config import EtherscanConfig
from tzledger.fetch.etherscan import EtherscanClient
from tzledger.fetch.fetcher import AiohttpTransport, Fetcher
from tzledger.utils.rate_limiter import SlidingWindowRateLimiter
from tzledger.utils.retry import RetryPolicy


def build_limiter(cfg: EtherscanConfig) -> SlidingWindowRateLimiter:
    rl = cfg.rate_limit
    return SlidingWindowRateLimiter(
        max_calls=rl.max_calls,
        window_s=rl.window_s,
        poll_interval_s=rl.poll_interval_s,
    )


def build_policy(cfg: EtherscanConfig) -> RetryPolicy:
    r = cfg.retry
    return RetryPolicy(
        max_retries=r.max_retries,
        base_delay_s=r.base_delay_s,
        jitter_s=r.jitter_s,
        retry_statuses=tuple(r.retry_statuses),
    )


class EtherscanSessionFactory:
    """
    每次 open() 创建一个 aiohttp session + EtherscanClient。

    limiter 由 factory 持有：同一 factory 打开的所有 session 共享同一配额。
    """

    def __init__(
        self,
        cfg: EtherscanConfig,
        api_key: Optional[str],
        limiter: Optional[SlidingWindowRateLimiter] = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self.limiter = limiter or build_limiter(cfg)
        self.policy = build_policy(cfg)

    @asynccontextmanager
    async def open(self) -> AsyncIterator[EtherscanClient]:
        async with aiohttp.ClientSession() as session:
            fetcher = Fetcher(
                AiohttpTransport(session, timeout_s=self.cfg.timeout_s),
                self.limiter,
                self.policy,
            )
            yield EtherscanClient(
                fetcher,
                api_key=self.api_key,
                base_url=self.cfg.base_url,
                page_size=self.cfg.page_size,
            )
