#!filepath: tzledger/abi/decoder.py
from __future__ import annotations

from typing import Any, Dict

from web3 import Web3

from tzledger.abi.cache import Abi
from tzledger.utils.errors import DecodeError


def function_base_name(function_name: str) -> str:
    """
    "registerNode(string _timezoneLocation)" -> "registerNode"
    """
    return function_name.split("(", 1)[0].strip()


class AbiDecoder:
    """
    用合约 ABI 解码交易 input，取第一个参数（时区字符串）。

    不需要 provider：Web3() 仅用于构造离线 contract 对象。
    """

    def __init__(self, abis: Dict[str, Abi]):
        self._w3 = Web3()
        self._contracts = {
            address.lower(): self._w3.eth.contract(abi=abi)
            for address, abi in abis.items()
        }

    def decode_first_param(self, address: str, function_name: str, input_data: str) -> Any:
        contract = self._contracts.get((address or "").lower())
        if contract is None:
            raise DecodeError(f"no ABI for contract {address}")

        expected = function_base_name(function_name)
        try:
            fn, params = contract.decode_function_input(input_data)
        except Exception as e:
            raise DecodeError(f"cannot decode input for {expected} on {address}: {e}") from e

        if fn.fn_name != expected:
            raise DecodeError(f"selector mismatch: expected {expected}, got {fn.fn_name}")
        if not params:
            raise DecodeError(f"{expected} has no parameters")

        return next(iter(params.values()))
