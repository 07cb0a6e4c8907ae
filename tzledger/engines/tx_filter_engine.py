#!filepath: tzledger/engines/tx_filter_engine.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from tzledger.engines.base import BaseEngine

RawTx = Dict[str, Any]


class TxFilterEngine(BaseEngine[RawTx, RawTx]):
    """
    原始交易过滤：
      - isError == "0"（未 revert）
      - functionName 包含任一选择器
    缺少这两个字段的记录直接丢弃。
    """

    def __init__(self, selectors: Iterable[str]):
        self.selectors = tuple(selectors)
        if not self.selectors:
            raise ValueError("TxFilterEngine needs at least one selector")

    def matches(self, function_name: str) -> bool:
        return any(s in function_name for s in self.selectors)

    def process(self, record: RawTx) -> Optional[RawTx]:
        if str(record.get("isError")) != "0":
            return None

        function_name = record.get("functionName")
        if not isinstance(function_name, str) or not self.matches(function_name):
            return None

        return record

    def execute(self, records: Iterable[RawTx]) -> list[RawTx]:
        return list(self.process_stream(records))
