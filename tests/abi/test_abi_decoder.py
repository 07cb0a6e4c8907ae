#!filepath: tests/abi/test_abi_decoder.py
import pytest

from tzledger.abi.decoder import AbiDecoder, function_base_name
from tzledger.utils.errors import DecodeError


@pytest.fixture
def decoder(node_manager_abi, addresses):
    return AbiDecoder({addresses["node_manager"]: node_manager_abi})


def test_function_base_name():
    assert function_base_name("registerNode(string _timezoneLocation)") == "registerNode"
    assert function_base_name("deposit") == "deposit"


def test_decode_registration_timezone(decoder, encode_call, addresses):
    data = encode_call("registerNode(string)", "Australia/Brisbane")
    tz = decoder.decode_first_param(addresses["node_manager"].upper(), "registerNode(string _timezoneLocation)", data)
    assert tz == "Australia/Brisbane"


def test_decode_set_timezone(decoder, encode_call, addresses):
    data = encode_call("setTimezoneLocation(string)", "Europe/Berlin")
    tz = decoder.decode_first_param(addresses["node_manager"], "setTimezoneLocation(string _timezoneLocation)", data)
    assert tz == "Europe/Berlin"


def test_unknown_contract(decoder, encode_call):
    with pytest.raises(DecodeError):
        decoder.decode_first_param("0x0000000000000000000000000000000000000001", "registerNode", encode_call("registerNode(string)", "UTC"))


def test_selector_mismatch(decoder, encode_call, addresses):
    data = encode_call("setTimezoneLocation(string)", "UTC")
    with pytest.raises(DecodeError):
        decoder.decode_first_param(addresses["node_manager"], "registerNode(string _timezoneLocation)", data)


def test_garbage_input(decoder, addresses):
    with pytest.raises(DecodeError):
        decoder.decode_first_param(addresses["node_manager"], "registerNode", "0xdeadbeef")
