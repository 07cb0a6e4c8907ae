#!filepath: tzledger/pipeline/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from tzledger.core.events import DepositEvent, IdentityEvent
from tzledger.engines.reconcile_engine import ReconcileResult


@dataclass
class PipelineContext:
    """
    PipelineContext = Pipeline 运行期唯一上下文

    - Pipeline 负责构造
    - Step 读取上游产出、写入自己的产出
    - 不放业务逻辑
    """

    data_dir: Path
    label: str = "node-timezones"

    # -------- fetch layer --------
    abis: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    identity_txs: List[Dict[str, Any]] = field(default_factory=list)
    deposit_txs: List[Dict[str, Any]] = field(default_factory=list)

    # -------- decoded --------
    identity_events: List[IdentityEvent] = field(default_factory=list)
    deposit_events: List[DepositEvent] = field(default_factory=list)

    # -------- outputs --------
    result: Optional[ReconcileResult] = None
    series: Optional[pd.DataFrame] = None

    # -------- runtime flags --------
    abort_pipeline: bool = False
    abort_reason: Optional[str] = None
