#!filepath: tzledger/__init__.py

from .utils.logger import Logging, logs, init_logging
from .utils.filesystem import FileSystem
from .utils.retry import AsyncRetry, RetryPolicy
from .utils.rate_limiter import SlidingWindowRateLimiter
from .core.events import AccumulatorEntry, DepositEvent, EventKind, IdentityEvent
from .engines.reconcile_engine import ReconcileEngine, ReconcileResult
from .config.app_config import AppConfig

__version__ = "0.1.0"

# alias 简化调用
fs = FileSystem
async_retry = AsyncRetry

__all__ = [
    "logs", "Logging", "init_logging",
    "fs", "async_retry", "RetryPolicy",
    "SlidingWindowRateLimiter",
    "AccumulatorEntry", "DepositEvent", "EventKind", "IdentityEvent",
    "ReconcileEngine", "ReconcileResult",
    "AppConfig",
]
