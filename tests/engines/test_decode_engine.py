#!filepath: tests/engines/test_decode_engine.py
import pytest

from tzledger.abi.decoder import AbiDecoder
from tzledger.core.events import DepositEvent, EventKind
from tzledger.engines.decode_engine import DepositDecodeEngine, IdentityDecodeEngine
from tzledger.utils.errors import DecodeError


@pytest.fixture
def engine(node_manager_abi, addresses):
    return IdentityDecodeEngine(AbiDecoder({addresses["node_manager"]: node_manager_abi}))


# ============================================================
# identity
# ============================================================
def test_decode_registration(engine, make_tx):
    ev = engine.decode(make_tx("register", "0xAbC", 100, tz="Australia/Brisbane", ts=1234, tx_hash="0xh1"))

    assert ev.actor == "0xabc"
    assert ev.block_height == 100
    assert ev.timestamp == 1234
    assert ev.timezone == "Australia/Brisbane"
    assert ev.kind is EventKind.REGISTER
    assert ev.tx_hash == "0xh1"


def test_decode_set_timezone(engine, make_tx):
    ev = engine.decode(make_tx("set_timezone", "0xabc", 200, tz="Europe/Paris"))
    assert ev.kind is EventKind.SET_TIMEZONE
    assert ev.timezone == "Europe/Paris"


def test_kind_of(engine):
    assert engine.kind_of("registerNode(string _timezoneLocation)") is EventKind.REGISTER
    assert engine.kind_of("setTimezoneLocation(string _timezoneLocation)") is EventKind.SET_TIMEZONE
    assert engine.kind_of("deposit()") is None


def test_decode_rejects_non_identity_call(engine, make_tx):
    with pytest.raises(DecodeError):
        engine.decode(make_tx("deposit", "0xabc", 100))


def test_malformed_header(engine, make_tx):
    tx = make_tx("register", "0xabc", 100, tz="UTC")
    tx["blockNumber"] = "not-a-number"
    with pytest.raises(DecodeError):
        engine.decode(tx)


def test_execute_drops_undecodable_and_continues(engine, make_tx, log_messages):
    good = make_tx("register", "0xa", 100, tz="UTC")
    bad = make_tx("register", "0xb", 101, tz="UTC", tx_hash="0xbad")
    bad["input"] = "0xdeadbeef"
    unknown = make_tx("set_timezone", "0xc", 102, tz="CET")
    unknown["to"] = "0x0000000000000000000000000000000000000001"

    events = engine.execute([good, bad, unknown])

    assert [e.actor for e in events] == ["0xa"]
    assert engine.dropped == 2
    assert any("[IdentityDecode] drop tx 0xbad" in m for m in log_messages)


# ============================================================
# deposits
# ============================================================
def test_deposit_decode(make_tx):
    engine = DepositDecodeEngine()
    out = engine.execute([make_tx("deposit", "0xAA", 150, ts=99, tx_hash="0xd")])
    assert out == [DepositEvent(actor="0xaa", block_height=150, timestamp=99, tx_hash="0xd")]


def test_deposit_missing_fields_dropped(make_tx):
    engine = DepositDecodeEngine()
    tx = make_tx("deposit", "0xaa", 150)
    del tx["timeStamp"]
    assert engine.execute([tx, make_tx("deposit", "0xbb", 151)])[0].actor == "0xbb"
    assert engine.dropped == 1
