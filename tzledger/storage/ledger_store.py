#!filepath: tzledger/storage/ledger_store.py
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from tzledger.core.events import AccumulatorEntry
from tzledger.utils.errors import StoredDataError
from tzledger.utils.filesystem import FileSystem
from tzledger.utils.logger import logs

LEDGER_SCHEMA = pa.schema(
    [
        ("actor", pa.string()),
        ("block_height", pa.int64()),
        ("timestamp", pa.int64()),
        ("timezone", pa.string()),
        ("weight", pa.int8()),
    ]
)

IDENTITY_TXS = "transactions_node_tz.json"
DEPOSIT_TXS = "transactions_node_deposits.json"
LEDGER_JSON = "node_tz_outputs.json"
LEDGER_PARQUET = "node_tz_outputs.parquet"
SERIES_PARQUET = "node_tz_series.parquet"


class LedgerStore:
    """
    data_dir 下的落盘约定：

      transactions_node_tz.json        identity 原始交易（已过滤）
      transactions_node_deposits.json  deposit 原始交易（已过滤）
      node_tz_outputs.json / .parquet  ledger
      node_tz_series.parquet           时区累计序列
    """

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def path(self, name: str) -> Path:
        return self.data_dir / name

    @staticmethod
    @contextmanager
    def _atomic(path: Path) -> Iterator[Path]:
        """tmp 文件写完再 rename，与 FileSystem.safe_write 一致"""
        FileSystem.ensure_dir(path.parent)
        tmp = path.with_name(path.name + ".tmp")
        yield tmp
        tmp.replace(path)

    # --------------------------------------------------
    # raw transaction batches
    # --------------------------------------------------
    def write_txs(self, name: str, txs: List[Dict[str, Any]]) -> Path:
        out = self.path(name)
        FileSystem.write_json(out, txs)
        logs.info(f"[LedgerStore] {len(txs)} txs -> {out}")
        return out

    def read_txs(self, name: str) -> List[Dict[str, Any]]:
        data = FileSystem.read_json(self.path(name))
        if not isinstance(data, list) or not all(isinstance(x, dict) for x in data):
            raise StoredDataError(f"{self.path(name)} is not a list of tx records")
        return data

    # --------------------------------------------------
    # ledger
    # --------------------------------------------------
    @logs.catch("ledger write failed")
    def write_ledger(self, ledger: Sequence[AccumulatorEntry]) -> tuple[Path, Path]:
        rows = [e.to_dict() for e in ledger]

        json_path = self.path(LEDGER_JSON)
        FileSystem.write_json(json_path, rows)

        parquet_path = self.path(LEDGER_PARQUET)
        table = pa.Table.from_pylist(rows, schema=LEDGER_SCHEMA)
        with self._atomic(parquet_path) as tmp:
            pq.write_table(table, tmp, compression="zstd")

        logs.info(f"[LedgerStore] ledger rows={len(rows)} -> {json_path.name}, {parquet_path.name}")
        return json_path, parquet_path

    def read_ledger(self) -> List[AccumulatorEntry]:
        rows = FileSystem.read_json(self.path(LEDGER_JSON))
        if not isinstance(rows, list):
            raise StoredDataError(f"{self.path(LEDGER_JSON)} is not a list")
        try:
            return [AccumulatorEntry.from_dict(r) for r in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise StoredDataError(f"malformed ledger row: {e!r}") from e

    def read_ledger_table(self) -> pa.Table:
        return pq.read_table(self.path(LEDGER_PARQUET))

    # --------------------------------------------------
    # series
    # --------------------------------------------------
    @logs.catch("series write failed")
    def write_series(self, series: pd.DataFrame) -> Path:
        out = self.path(SERIES_PARQUET)
        with self._atomic(out) as tmp:
            series.to_parquet(tmp, index=False)
        logs.info(f"[LedgerStore] series rows={len(series)} -> {out.name}")
        return out
