#!filepath: tzledger/config/contracts_config.py
from typing import List

from pydantic import BaseModel, field_validator


class ContractsConfig(BaseModel):
    """
    被分析的合约地址（按合约版本列出，地址统一小写）
    """

    node_managers: List[str]
    deposit_pools: List[str]

    @field_validator("node_managers", "deposit_pools")
    @classmethod
    def _lower(cls, v: List[str]) -> List[str]:
        return [a.lower() for a in v]

    def all_addresses(self) -> List[str]:
        return [*self.node_managers, *self.deposit_pools]


class FunctionsConfig(BaseModel):
    """
    functionName 子串选择器（Etherscan txlist 的 functionName 字段）
    """

    registration: str = "registerNode"
    set_timezone: str = "setTimezone"
    deposit: str = "deposit"
