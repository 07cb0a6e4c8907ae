#!filepath: tzledger/abi/cache.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from tzledger.utils.errors import StoredDataError
from tzledger.utils.filesystem import FileSystem
from tzledger.utils.logger import logs

Abi = List[Dict[str, Any]]


class AbiCache(Protocol):
    def get(self, address: str) -> Optional[Abi]:
        ...

    def put(self, address: str, abi: Abi) -> None:
        ...


class MemoryAbiCache:
    def __init__(self):
        self._store: Dict[str, Abi] = {}

    def get(self, address: str) -> Optional[Abi]:
        return self._store.get(address.lower())

    def put(self, address: str, abi: Abi) -> None:
        self._store[address.lower()] = abi


class FileAbiCache:
    """
    每个合约一个文件：<dir>/contractABI_<address>.json

    文件损坏视为 miss（重新拉取后覆盖），不中断流程。
    """

    def __init__(self, cache_dir: str | Path):
        self.cache_dir = Path(cache_dir)

    def path_for(self, address: str) -> Path:
        return self.cache_dir / f"contractABI_{address.lower()}.json"

    def get(self, address: str) -> Optional[Abi]:
        path = self.path_for(address)
        if not path.exists():
            return None
        try:
            abi = FileSystem.read_json(path)
        except StoredDataError as e:
            logs.warning(f"[AbiCache] ignoring unreadable cache entry: {e}")
            return None
        return abi if isinstance(abi, list) else None

    def put(self, address: str, abi: Abi) -> None:
        FileSystem.write_json(self.path_for(address), abi)


async def load_abis(addresses: Iterable[str], cache: AbiCache, client) -> Dict[str, Abi]:
    """
    cache 命中直接返回，否则通过 client.get_abi 拉取并写回 cache（并发）
    """

    async def _one(address: str) -> Abi:
        abi = cache.get(address)
        if abi is not None:
            logs.debug(f"[AbiCache] hit {address}")
            return abi
        abi = await client.get_abi(address)
        cache.put(address, abi)
        return abi

    addresses = [a.lower() for a in addresses]
    abis = await asyncio.gather(*(_one(a) for a in addresses))
    return dict(zip(addresses, abis))
