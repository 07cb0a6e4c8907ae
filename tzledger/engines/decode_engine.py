#!filepath: tzledger/engines/decode_engine.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from tzledger.abi.decoder import AbiDecoder
from tzledger.core.events import DepositEvent, EventKind, IdentityEvent
from tzledger.engines.base import BaseEngine
from tzledger.utils.errors import DecodeError
from tzledger.utils.logger import logs

RawTx = Dict[str, Any]


def _header(record: RawTx) -> tuple[str, int, int, str]:
    """
    (actor, block_height, timestamp, tx_hash)；字段缺失或非法 → DecodeError
    """
    try:
        actor = str(record["from"]).lower()
        block = int(record["blockNumber"])
        ts = int(record["timeStamp"])
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"malformed tx record: {e!r}") from e
    return actor, block, ts, str(record.get("hash", ""))


class IdentityDecodeEngine(BaseEngine[RawTx, IdentityEvent]):
    """
    registerNode / setTimezone 交易 → IdentityEvent

    单条解码失败：warning + 丢弃，不中断整批。
    """

    def __init__(
        self,
        decoder: AbiDecoder,
        registration_selector: str = "registerNode",
        set_timezone_selector: str = "setTimezone",
    ):
        self.decoder = decoder
        self.registration_selector = registration_selector
        self.set_timezone_selector = set_timezone_selector
        self.dropped = 0

    def kind_of(self, function_name: str) -> Optional[EventKind]:
        if self.registration_selector in function_name:
            return EventKind.REGISTER
        if self.set_timezone_selector in function_name:
            return EventKind.SET_TIMEZONE
        return None

    def decode(self, record: RawTx) -> IdentityEvent:
        function_name = str(record.get("functionName", ""))
        kind = self.kind_of(function_name)
        if kind is None:
            raise DecodeError(f"not an identity call: {function_name!r}")

        actor, block, ts, tx_hash = _header(record)
        timezone = self.decoder.decode_first_param(
            record.get("to", ""), function_name, record.get("input", "")
        )
        if not isinstance(timezone, str):
            raise DecodeError(f"timezone is not a string: {timezone!r}")

        return IdentityEvent(
            actor=actor,
            block_height=block,
            timestamp=ts,
            timezone=timezone,
            kind=kind,
            tx_hash=tx_hash,
        )

    def process(self, record: RawTx) -> Optional[IdentityEvent]:
        try:
            return self.decode(record)
        except DecodeError as e:
            self.dropped += 1
            logs.warning(f"[IdentityDecode] drop tx {record.get('hash', '?')}: {e}")
            return None

    def execute(self, records: Iterable[RawTx]) -> list[IdentityEvent]:
        return list(self.process_stream(records))


class DepositDecodeEngine(BaseEngine[RawTx, DepositEvent]):
    """deposit 交易 → DepositEvent（不需要 ABI）"""

    def __init__(self):
        self.dropped = 0

    def process(self, record: RawTx) -> Optional[DepositEvent]:
        try:
            actor, block, ts, tx_hash = _header(record)
        except DecodeError as e:
            self.dropped += 1
            logs.warning(f"[DepositDecode] drop tx {record.get('hash', '?')}: {e}")
            return None
        return DepositEvent(actor=actor, block_height=block, timestamp=ts, tx_hash=tx_hash)

    def execute(self, records: Iterable[RawTx]) -> list[DepositEvent]:
        return list(self.process_stream(records))
