#!filepath: tzledger/engines/timezone_series_engine.py
from __future__ import annotations

from typing import Dict, Sequence

import pandas as pd

from tzledger.core.events import LEDGER_FIELDS, AccumulatorEntry

SERIES_COLUMNS = ["block_height", "timestamp", "timezone", "delta", "total"]


class TimezoneSeriesEngine:
    """
    ledger → 每个时区的累计归属数量（时间序列）

    输出列：
      block_height / timestamp / timezone
      delta : 该 block 内该时区的 weight 之和
      total : 截至该 block 的累计值
    """

    @staticmethod
    def to_frame(ledger: Sequence[AccumulatorEntry]) -> pd.DataFrame:
        return pd.DataFrame(
            [e.to_dict() for e in ledger], columns=list(LEDGER_FIELDS)
        )

    def execute(self, ledger: Sequence[AccumulatorEntry]) -> pd.DataFrame:
        if not ledger:
            return pd.DataFrame(columns=SERIES_COLUMNS)

        df = self.to_frame(ledger)

        grouped = (
            df.groupby(["block_height", "timezone"], sort=True)
            .agg(timestamp=("timestamp", "max"), delta=("weight", "sum"))
            .reset_index()
        )
        grouped["total"] = grouped.groupby("timezone")["delta"].cumsum()

        return grouped[SERIES_COLUMNS].reset_index(drop=True)

    def snapshot(self, ledger: Sequence[AccumulatorEntry], at_block: int) -> Dict[str, int]:
        """
        at_block（含）时各时区的归属数量，只返回 > 0 的时区
        """
        counts: Dict[str, int] = {}
        for e in ledger:
            if e.block_height > at_block:
                continue
            counts[e.timezone] = counts.get(e.timezone, 0) + e.weight
        return {tz: n for tz, n in sorted(counts.items()) if n > 0}
