#!filepath: tzledger/fetch/etherscan.py
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlencode

from tzledger.fetch.fetcher import FetchResponse, Fetcher, redact
from tzledger.utils.errors import EtherscanError, StoredDataError
from tzledger.utils.logger import logs

END_BLOCK = 99_999_999


class EtherscanClient:
    """
    Etherscan API（account / contract 模块）

    所有请求都经过同一个 Fetcher，因此共享同一个限流窗口。
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        api_key: Optional[str],
        base_url: str = "https://api.etherscan.io/api",
        page_size: int = 10000,
    ):
        self.fetcher = fetcher
        self.api_key = api_key
        self.base_url = base_url
        self.page_size = page_size

    # --------------------------------------------------
    def build_url(self, **params: Any) -> str:
        if self.api_key:
            params["apikey"] = self.api_key
        return f"{self.base_url}?{urlencode(params)}"

    async def _get_result(self, url: str) -> Any:
        """
        请求 + 校验 HTTP 状态 + 取出 payload["result"]
        """
        res: FetchResponse = await self.fetcher.fetch(url)
        if not res.ok:
            raise EtherscanError(
                f"HTTP {res.status} {res.reason} for {redact(url)}",
                status=res.status,
            )

        payload = res.json()
        if not isinstance(payload, dict) or "result" not in payload:
            raise StoredDataError(f"unexpected Etherscan payload for {redact(url)}: {payload!r:.200}")
        return payload

    # --------------------------------------------------
    # contract ABI
    # --------------------------------------------------
    async def get_abi(self, address: str) -> List[Dict[str, Any]]:
        url = self.build_url(module="contract", action="getabi", address=address)
        payload = await self._get_result(url)

        if str(payload.get("status")) != "1":
            raise EtherscanError(f"getabi failed for {address}: {payload.get('result')!r:.200}")

        abi = payload["result"]
        # Etherscan 把 ABI 作为 JSON 字符串返回
        if isinstance(abi, str):
            try:
                abi = json.loads(abi)
            except ValueError as e:
                raise StoredDataError(f"ABI for {address} is not valid JSON") from e

        if not isinstance(abi, list):
            raise StoredDataError(f"ABI for {address} is not a list")

        logs.info(f"[Etherscan] ABI loaded for {address} ({len(abi)} entries)")
        return abi

    # --------------------------------------------------
    # normal transactions
    # --------------------------------------------------
    async def _txlist_page(self, address: str, start_block: int) -> List[Dict[str, Any]]:
        url = self.build_url(
            module="account",
            action="txlist",
            address=address,
            startblock=start_block,
            endblock=END_BLOCK,
            page=1,
            offset=self.page_size,
            sort="asc",
        )
        payload = await self._get_result(url)
        result = payload["result"]

        if isinstance(result, list):
            return result

        raise EtherscanError(
            f"txlist failed for {address}: {payload.get('message')} {result!r:.200}"
        )

    async def get_normal_txs(self, address: str) -> List[Dict[str, Any]]:
        """
        按 startblock 翻页，直到某页不足 page_size。
        相邻两页在边界区块上会重叠，按 hash 去重。
        """
        txs: List[Dict[str, Any]] = []
        seen: set[str] = set()
        start_block = 0

        while True:
            page = await self._txlist_page(address, start_block)
            fresh = [tx for tx in page if tx.get("hash") not in seen]
            txs.extend(fresh)
            seen.update(tx.get("hash") for tx in fresh)

            if len(page) < self.page_size:
                break

            next_block = int(page[-1]["blockNumber"])
            if not fresh or next_block == start_block:
                logs.warning(
                    f"[Etherscan] {address}: block {next_block} holds more than "
                    f"{self.page_size} txs, stopping pagination"
                )
                break
            start_block = next_block

        logs.info(f"[Etherscan] {address}: {len(txs)} txs")
        return txs

    async def get_txs_for(self, addresses: Iterable[str]) -> List[Dict[str, Any]]:
        """
        并发拉取多个合约地址，结果按地址顺序拼接
        """
        batches = await asyncio.gather(*(self.get_normal_txs(a) for a in addresses))
        return [tx for batch in batches for tx in batch]
