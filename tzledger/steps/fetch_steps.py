#!filepath: tzledger/steps/fetch_steps.py
from __future__ import annotations

import asyncio
from typing import Iterable

from tzledger.abi.cache import AbiCache, load_abis
from tzledger.engines.tx_filter_engine import TxFilterEngine
from tzledger.pipeline.context import PipelineContext
from tzledger.pipeline.step import PipelineStep
from tzledger.storage.ledger_store import DEPOSIT_TXS, IDENTITY_TXS, LedgerStore
from tzledger.utils.logger import logs


class LoadAbisStep(PipelineStep):
    """
    合约 ABI：cache 命中直接用，否则从 Etherscan 拉取并写回 cache
    """

    stage = "abi"

    def __init__(self, *, sessions, cache: AbiCache, addresses: Iterable[str], inst=None):
        super().__init__(inst=inst)
        self.sessions = sessions
        self.cache = cache
        self.addresses = list(addresses)

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        with self.timed():
            async with self.sessions.open() as client:
                ctx.abis = await load_abis(self.addresses, self.cache, client)

        self.inst.metrics.record("abis", len(ctx.abis))
        return ctx


class FetchTransactionsStep(PipelineStep):
    """
    Source Step：

      identity 合约（node manager 各版本）+ deposit 合约（各版本）
      → 全部并发拉取 → 过滤 → 落盘 → ctx.identity_txs / ctx.deposit_txs

    Error policy:
      - 传输层 / Etherscan 失败 → 直接抛出，中断整次运行
    """

    stage = "fetch"

    def __init__(
        self,
        *,
        sessions,
        identity_addresses: Iterable[str],
        deposit_addresses: Iterable[str],
        identity_filter: TxFilterEngine,
        deposit_filter: TxFilterEngine,
        store: LedgerStore,
        inst=None,
    ):
        super().__init__(inst=inst)
        self.sessions = sessions
        self.identity_addresses = list(identity_addresses)
        self.deposit_addresses = list(deposit_addresses)
        self.identity_filter = identity_filter
        self.deposit_filter = deposit_filter
        self.store = store

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        with self.timed():
            async with self.sessions.open() as client:
                identity_raw, deposit_raw = await asyncio.gather(
                    client.get_txs_for(self.identity_addresses),
                    client.get_txs_for(self.deposit_addresses),
                )

        ctx.identity_txs = self.identity_filter.execute(identity_raw)
        ctx.deposit_txs = self.deposit_filter.execute(deposit_raw)

        logs.info(
            f"[{self.step_name}] identity {len(ctx.identity_txs)}/{len(identity_raw)}, "
            f"deposit {len(ctx.deposit_txs)}/{len(deposit_raw)} kept"
        )

        self.store.write_txs(IDENTITY_TXS, ctx.identity_txs)
        self.store.write_txs(DEPOSIT_TXS, ctx.deposit_txs)

        self.inst.metrics.record("identity_txs", len(ctx.identity_txs))
        self.inst.metrics.record("deposit_txs", len(ctx.deposit_txs))
        return ctx


class LoadTransactionsStep(PipelineStep):
    """
    从 data_dir 读取上一次 fetch 落盘的交易（损坏 → StoredDataError，中断）
    """

    stage = "load"

    def __init__(self, *, store: LedgerStore, inst=None):
        super().__init__(inst=inst)
        self.store = store

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        with self.timed():
            ctx.identity_txs = self.store.read_txs(IDENTITY_TXS)
            ctx.deposit_txs = self.store.read_txs(DEPOSIT_TXS)

        logs.info(
            f"[{self.step_name}] loaded identity={len(ctx.identity_txs)} "
            f"deposit={len(ctx.deposit_txs)}"
        )
        return ctx
