# tests/conftest.py
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List

import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector
from loguru import logger

from tzledger.fetch.fetcher import FetchResponse

NODE_MANAGER = "0x372236c940f572020c0c0eb1ac7212460e4e5a33"
DEPOSIT_POOL = "0x1cc9cf5586522c6f483e84a19c3c2b0b6d027bf0"


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def log_messages() -> List[str]:
    """
    收集 loguru 输出（message 文本 + level）
    """
    captured: List[str] = []
    sink_id = logger.add(lambda msg: captured.append(f"{msg.record['level'].name} {msg.record['message']}"))
    yield captured
    logger.remove(sink_id)


# ============================================================
# fake clock / sleep（限流、重试测试不真正等待）
# ============================================================
class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ============================================================
# fake transport
# ============================================================
class ScriptedTransport:
    """
    按 handler(url) 返回 FetchResponse；记录所有请求 URL
    """

    def __init__(self, handler: Callable[[str], FetchResponse]):
        self.handler = handler
        self.urls: List[str] = []

    async def __call__(self, url: str) -> FetchResponse:
        self.urls.append(url)
        await asyncio.sleep(0)
        return self.handler(url)


@pytest.fixture
def scripted_transport():
    return ScriptedTransport


# ============================================================
# ABI / tx helpers
# ============================================================
@pytest.fixture(scope="session")
def node_manager_abi() -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "name": "registerNode",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "_timezoneLocation", "type": "string"}],
            "outputs": [],
        },
        {
            "type": "function",
            "name": "setTimezoneLocation",
            "stateMutability": "nonpayable",
            "inputs": [{"name": "_timezoneLocation", "type": "string"}],
            "outputs": [],
        },
    ]


@pytest.fixture(scope="session")
def encode_call() -> Callable[[str, str], str]:
    """
    encode_call("registerNode(string)", "UTC") -> "0x..." calldata
    """

    def _encode(signature: str, value: str) -> str:
        selector = function_signature_to_4byte_selector(signature)
        return "0x" + (selector + encode(["string"], [value])).hex()

    return _encode


@pytest.fixture
def make_tx(encode_call):
    """
    Etherscan txlist 记录工厂

    Usage:
        make_tx("register", "0xabc", 100, tz="UTC")
        make_tx("set_timezone", "0xabc", 200, tz="UTC+2")
        make_tx("deposit", "0xabc", 150)
    """

    def _make(kind: str, actor: str, block: int, *, tz: str = "", ts: int | None = None,
              is_error: str = "0", tx_hash: str | None = None) -> Dict[str, Any]:
        if kind == "register":
            to, fn, data = NODE_MANAGER, "registerNode(string _timezoneLocation)", encode_call("registerNode(string)", tz)
        elif kind == "set_timezone":
            to, fn, data = (
                NODE_MANAGER,
                "setTimezoneLocation(string _timezoneLocation)",
                encode_call("setTimezoneLocation(string)", tz),
            )
        elif kind == "deposit":
            to, fn, data = DEPOSIT_POOL, "deposit(uint256 _minimumNodeFee)", "0xd0e30db0"
        else:
            to, fn, data = NODE_MANAGER, kind, "0x"

        return {
            "hash": tx_hash or f"0x{kind}-{actor}-{block}",
            "from": actor,
            "to": to,
            "input": data,
            "blockNumber": str(block),
            "timeStamp": str(ts if ts is not None else 1_600_000_000 + block * 12),
            "isError": is_error,
            "functionName": fn,
        }

    return _make


@pytest.fixture(scope="session")
def addresses() -> Dict[str, str]:
    return {"node_manager": NODE_MANAGER, "deposit_pool": DEPOSIT_POOL}
