#!filepath: tzledger/config/etherscan_config.py
from typing import List

from pydantic import BaseModel, Field


class RateLimitConfig(BaseModel):
    max_calls: int = Field(30, ge=1)
    window_s: float = Field(60.0, gt=0)
    poll_interval_s: float = Field(10.0, gt=0)


class RetryConfig(BaseModel):
    max_retries: int = Field(30, ge=0)
    base_delay_s: float = Field(20.0, ge=0)
    jitter_s: float = Field(1.0, ge=0)
    retry_statuses: List[int] = [429, 503]


class EtherscanConfig(BaseModel):
    base_url: str = "https://api.etherscan.io/api"
    timeout_s: float = 60.0
    page_size: int = Field(10000, ge=1)
    rate_limit: RateLimitConfig = RateLimitConfig()
    retry: RetryConfig = RetryConfig()
