#!filepath: tzledger/workflows/build_ledger.py
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from tzledger.abi.cache import FileAbiCache
from tzledger.config.app_config import AppConfig
from tzledger.engines.reconcile_engine import ReconcileEngine
from tzledger.engines.tx_filter_engine import TxFilterEngine
from tzledger.fetch.session import EtherscanSessionFactory
from tzledger.observability.instrumentation import Instrumentation
from tzledger.pipeline.context import PipelineContext
from tzledger.pipeline.pipeline import DataPipeline
from tzledger.steps.fetch_steps import FetchTransactionsStep, LoadAbisStep, LoadTransactionsStep
from tzledger.steps.ledger_steps import (
    DecodeStep,
    PersistLedgerStep,
    ReconcileStep,
    TimezoneSeriesStep,
)
from tzledger.storage.ledger_store import LedgerStore


class Mode(str, Enum):
    FETCH = "fetch"      # 拉取 ABI + 原始交易并落盘
    COMPILE = "compile"  # 从落盘交易生成 ledger
    RUN = "run"          # 拉取 + 生成


def build_ledger_pipeline(
    cfg: AppConfig,
    mode: Mode = Mode.RUN,
    *,
    data_dir: Optional[Path] = None,
    strict: Optional[bool] = None,
    sessions: Optional[EtherscanSessionFactory] = None,
) -> tuple[DataPipeline, PipelineContext]:
    """
    Node Timezone Ledger Pipeline

    Semantic Order:
        LoadAbis            (cache → Etherscan getabi)
        → FetchTransactions (txlist, identity + deposit concurrently)  | LoadTransactions
        → Decode            (ABI decode, drop failures)
        → Reconcile         (ordered accumulator ledger)
        → TimezoneSeries    (running totals per timezone)
        → PersistLedger
    """
    data_dir = Path(data_dir or cfg.data.data_dir)
    strict = cfg.data.strict_registrations if strict is None else strict

    inst = Instrumentation()
    store = LedgerStore(data_dir)
    sessions = sessions or EtherscanSessionFactory(cfg.etherscan, cfg.secret.etherscan_api_key)

    fn = cfg.functions
    fetch_step = FetchTransactionsStep(
        sessions=sessions,
        identity_addresses=cfg.contracts.node_managers,
        deposit_addresses=cfg.contracts.deposit_pools,
        identity_filter=TxFilterEngine([fn.registration, fn.set_timezone]),
        deposit_filter=TxFilterEngine([fn.deposit]),
        store=store,
        inst=inst,
    )

    abi_step = LoadAbisStep(
        sessions=sessions,
        cache=FileAbiCache(data_dir),
        addresses=cfg.contracts.all_addresses(),
        inst=inst,
    )

    compile_steps = [
        DecodeStep(functions=fn, inst=inst),
        ReconcileStep(engine=ReconcileEngine(strict=strict), inst=inst),
        TimezoneSeriesStep(inst=inst),
        PersistLedgerStep(store=store, inst=inst),
    ]

    if mode is Mode.FETCH:
        steps = [abi_step, fetch_step]
    elif mode is Mode.COMPILE:
        steps = [abi_step, LoadTransactionsStep(store=store, inst=inst), *compile_steps]
    else:
        steps = [abi_step, fetch_step, *compile_steps]

    ctx = PipelineContext(data_dir=data_dir, label=mode.value)
    return DataPipeline(steps=steps, inst=inst), ctx
