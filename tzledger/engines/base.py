#!filepath: tzledger/engines/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterable, Iterator, Optional, TypeVar

InEvent = TypeVar("InEvent")
OutEvent = TypeVar("OutEvent")


class BaseEngine(ABC, Generic[InEvent, OutEvent]):
    """
    Engine 抽象基类（Atomic Engine Layer）：

    - 不做任何 I/O（不读写文件 / 网络）
    - 专注“输入记录 → 输出事件”的纯逻辑
    - process 返回 None 表示该记录被丢弃
    """

    @abstractmethod
    def process(self, record: InEvent) -> Optional[OutEvent]:
        """
        处理单条记录（最小粒度单位）。
        """
        raise NotImplementedError

    def process_stream(self, records: Iterable[InEvent]) -> Iterator[OutEvent]:
        """
        逐条调用 process，跳过被丢弃的记录。
        """
        for rec in records:
            out = self.process(rec)
            if out is not None:
                yield out
