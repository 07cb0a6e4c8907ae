#!filepath: tzledger/steps/ledger_steps.py
from __future__ import annotations

from tzledger.abi.decoder import AbiDecoder
from tzledger.config.contracts_config import FunctionsConfig
from tzledger.engines.decode_engine import DepositDecodeEngine, IdentityDecodeEngine
from tzledger.engines.reconcile_engine import ReconcileEngine
from tzledger.engines.timezone_series_engine import TimezoneSeriesEngine
from tzledger.pipeline.context import PipelineContext
from tzledger.pipeline.step import PipelineStep
from tzledger.storage.ledger_store import LedgerStore
from tzledger.utils.errors import PipelineAbort


class DecodeStep(PipelineStep):
    """
    raw tx → IdentityEvent / DepositEvent
    单条解码失败只丢弃该条（engine 内部 warning）
    """

    stage = "decode"

    def __init__(self, *, functions: FunctionsConfig | None = None, inst=None):
        super().__init__(inst=inst)
        self.functions = functions or FunctionsConfig()

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        if not ctx.abis:
            raise PipelineAbort("no contract ABIs loaded, cannot decode identity txs")

        identity = IdentityDecodeEngine(
            AbiDecoder(ctx.abis),
            registration_selector=self.functions.registration,
            set_timezone_selector=self.functions.set_timezone,
        )
        deposits = DepositDecodeEngine()

        with self.timed():
            ctx.identity_events = identity.execute(ctx.identity_txs)
            ctx.deposit_events = deposits.execute(ctx.deposit_txs)

        self.inst.metrics.record("identity_events", len(ctx.identity_events))
        self.inst.metrics.record("deposit_events", len(ctx.deposit_events))
        self.inst.metrics.record("decode_dropped", identity.dropped + deposits.dropped)
        return ctx


class ReconcileStep(PipelineStep):
    stage = "reconcile"

    def __init__(self, *, engine: ReconcileEngine, inst=None):
        super().__init__(inst=inst)
        self.engine = engine

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        with self.timed():
            ctx.result = self.engine.execute(ctx.identity_events, ctx.deposit_events)

        self.inst.metrics.record("ledger_entries", len(ctx.result.ledger))
        self.inst.metrics.record("dropped_deposits", len(ctx.result.dropped_deposits))
        return ctx


class TimezoneSeriesStep(PipelineStep):
    stage = "series"

    def __init__(self, *, engine: TimezoneSeriesEngine | None = None, inst=None):
        super().__init__(inst=inst)
        self.engine = engine or TimezoneSeriesEngine()

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        if ctx.result is None:
            raise PipelineAbort("no ledger to aggregate")

        with self.timed():
            ctx.series = self.engine.execute(ctx.result.ledger)
        return ctx


class PersistLedgerStep(PipelineStep):
    stage = "persist"

    def __init__(self, *, store: LedgerStore, inst=None):
        super().__init__(inst=inst)
        self.store = store

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        if ctx.result is None:
            raise PipelineAbort("no ledger to persist")

        with self.timed():
            self.store.write_ledger(ctx.result.ledger)
            if ctx.series is not None:
                self.store.write_series(ctx.series)
        return ctx
