#!filepath: tzledger/core/events.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum


class EventKind(str, Enum):
    REGISTER = "register"
    SET_TIMEZONE = "set_timezone"


@dataclass(frozen=True, slots=True)
class IdentityEvent:
    """
    注册 / 修改时区事件（已解码，不可变）
    """
    actor: str           # 小写地址
    block_height: int
    timestamp: int       # unix 秒
    timezone: str
    kind: EventKind
    tx_hash: str = ""


@dataclass(frozen=True, slots=True)
class DepositEvent:
    """
    一次 deposit = 一个单位的质押资本
    """
    actor: str
    block_height: int
    timestamp: int
    tx_hash: str = ""


@dataclass(frozen=True, slots=True)
class AccumulatorEntry:
    """
    Ledger 的最小单位：
    在 block_height 时，actor 的一个资本单位对 timezone 的归属变化 weight（-1 / +1）
    """
    actor: str
    block_height: int
    timestamp: int
    timezone: str
    weight: int

    def __post_init__(self):
        if self.weight not in (-1, 1):
            raise ValueError(f"weight must be -1 or +1 (got {self.weight})")

    def to_dict(self) -> dict:
        """
        用于 JSON / parquet 序列化
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, row: dict) -> "AccumulatorEntry":
        return cls(
            actor=str(row["actor"]),
            block_height=int(row["block_height"]),
            timestamp=int(row["timestamp"]),
            timezone=str(row["timezone"]),
            weight=int(row["weight"]),
        )


LEDGER_FIELDS = ("actor", "block_height", "timestamp", "timezone", "weight")
