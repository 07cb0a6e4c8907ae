#!filepath: tests/pipeline/test_build_ledger_pipeline.py
from contextlib import asynccontextmanager

import pandas as pd
import pytest

from tzledger.config.app_config import AppConfig
from tzledger.storage.ledger_store import (
    DEPOSIT_TXS,
    IDENTITY_TXS,
    LEDGER_JSON,
    LEDGER_PARQUET,
    SERIES_PARQUET,
    LedgerStore,
)
from tzledger.utils.errors import DataIntegrityError, EtherscanError
from tzledger.workflows.build_ledger import Mode, build_ledger_pipeline


class FakeClient:
    def __init__(self, abis, txs):
        self.abis = abis
        self.txs = txs
        self.abi_calls = []

    async def get_abi(self, address):
        self.abi_calls.append(address)
        if address not in self.abis:
            raise EtherscanError(f"getabi failed for {address}")
        return self.abis[address]

    async def get_txs_for(self, addresses):
        return [tx for a in addresses for tx in self.txs.get(a, [])]


class FakeSessions:
    def __init__(self, client):
        self.client = client
        self.opened = 0

    @asynccontextmanager
    async def open(self):
        self.opened += 1
        yield self.client


@pytest.fixture
def cfg(addresses):
    return AppConfig(
        contracts={
            "node_managers": [addresses["node_manager"]],
            "deposit_pools": [addresses["deposit_pool"]],
        }
    )


@pytest.fixture
def history(make_tx, addresses):
    """
    0xa: 100 注册 UTC，150 deposit，200 改为 UTC+2，250 deposit
    0xb: 没有注册，160 deposit
    另有一笔 revert 的注册、一笔无关调用
    """
    identity = [
        make_tx("register", "0xa", 100, tz="UTC"),
        make_tx("register", "0xc", 110, tz="CET", is_error="1"),
        make_tx("setWithdrawalAddress(address _addr)", "0xa", 120),
        make_tx("set_timezone", "0xa", 200, tz="UTC+2"),
    ]
    deposits = [
        make_tx("deposit", "0xa", 150),
        make_tx("deposit", "0xb", 160),
        make_tx("deposit", "0xa", 250),
    ]
    return {addresses["node_manager"]: identity, addresses["deposit_pool"]: deposits}


@pytest.fixture
def client(node_manager_abi, addresses, history):
    abis = {addresses["node_manager"]: node_manager_abi, addresses["deposit_pool"]: []}
    return FakeClient(abis, history)


def _rows(ledger):
    return [(e.actor, e.block_height, e.timezone, e.weight) for e in ledger]


EXPECTED = [
    ("0xa", 150, "UTC", 1),
    ("0xa", 200, "UTC", -1),
    ("0xa", 200, "UTC+2", 1),
    ("0xa", 250, "UTC+2", 1),
]


def test_run_end_to_end(cfg, client, tmp_path):
    sessions = FakeSessions(client)
    pipeline, ctx = build_ledger_pipeline(cfg, Mode.RUN, data_dir=tmp_path, sessions=sessions)

    ctx = pipeline.run(ctx)

    assert not ctx.abort_pipeline
    assert _rows(ctx.result.ledger) == EXPECTED
    assert [d.actor for d in ctx.result.dropped_deposits] == ["0xb"]
    assert len(ctx.identity_txs) == 2
    assert len(ctx.deposit_txs) == 3

    for name in (IDENTITY_TXS, DEPOSIT_TXS, LEDGER_JSON, LEDGER_PARQUET, SERIES_PARQUET):
        assert (tmp_path / name).exists()
    assert _rows(LedgerStore(tmp_path).read_ledger()) == EXPECTED

    series = pd.read_parquet(tmp_path / SERIES_PARQUET)
    assert series.groupby("timezone")["total"].last().to_dict() == {"UTC": 0, "UTC+2": 2}

    # ABI 已写入 cache
    assert sorted(p.name for p in tmp_path.glob("contractABI_*.json")) == sorted(
        f"contractABI_{a}.json" for a in cfg.contracts.all_addresses()
    )
    assert sessions.opened == 2


def test_compile_reuses_stored_txs_and_cached_abis(cfg, client, tmp_path):
    pipeline, ctx = build_ledger_pipeline(cfg, Mode.RUN, data_dir=tmp_path, sessions=FakeSessions(client))
    pipeline.run(ctx)
    (tmp_path / LEDGER_JSON).unlink()

    offline = FakeClient(abis={}, txs={})
    pipeline, ctx = build_ledger_pipeline(cfg, Mode.COMPILE, data_dir=tmp_path, sessions=FakeSessions(offline))
    ctx = pipeline.run(ctx)

    assert offline.abi_calls == []
    assert _rows(ctx.result.ledger) == EXPECTED
    assert (tmp_path / LEDGER_JSON).exists()


def test_fetch_writes_transactions_and_abis(cfg, client, tmp_path):
    pipeline, ctx = build_ledger_pipeline(cfg, Mode.FETCH, data_dir=tmp_path, sessions=FakeSessions(client))
    ctx = pipeline.run(ctx)

    assert ctx.result is None
    assert (tmp_path / IDENTITY_TXS).exists()
    assert not (tmp_path / LEDGER_JSON).exists()
    assert len(list(tmp_path.glob("contractABI_*.json"))) == 2


def test_strict_mode_raises_on_missing_registration(cfg, client, tmp_path):
    pipeline, ctx = build_ledger_pipeline(
        cfg, Mode.RUN, data_dir=tmp_path, strict=True, sessions=FakeSessions(client)
    )
    with pytest.raises(DataIntegrityError):
        pipeline.run(ctx)


def test_abi_failure_propagates(cfg, history, tmp_path):
    pipeline, ctx = build_ledger_pipeline(
        cfg, Mode.RUN, data_dir=tmp_path, sessions=FakeSessions(FakeClient({}, history))
    )
    with pytest.raises(EtherscanError):
        pipeline.run(ctx)


def test_abort_without_abis(tmp_path):
    cfg = AppConfig(contracts={"node_managers": [], "deposit_pools": []})
    LedgerStore(tmp_path).write_txs(IDENTITY_TXS, [])
    LedgerStore(tmp_path).write_txs(DEPOSIT_TXS, [])

    client = FakeClient({}, {})
    pipeline, ctx = build_ledger_pipeline(cfg, Mode.COMPILE, data_dir=tmp_path, sessions=FakeSessions(client))
    ctx = pipeline.run(ctx)

    assert ctx.abort_pipeline
    assert "ABI" in ctx.abort_reason
    assert ctx.result is None
    assert client.abi_calls == []
