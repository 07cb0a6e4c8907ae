#!filepath: tzledger/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from .contracts_config import ContractsConfig, FunctionsConfig
from .data_config import DataConfig
from .etherscan_config import EtherscanConfig
from .log_config import LogConfig
from .secret_config import SecretConfig


def project_root() -> str:
    """
    返回项目根目录（基于当前文件位置推导）:
    tzledger/config/app_config.py → tzledger/config → tzledger → project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = LogConfig()
    etherscan: EtherscanConfig = EtherscanConfig()
    contracts: ContractsConfig
    functions: FunctionsConfig = FunctionsConfig()
    data: DataConfig = DataConfig()
    secret: SecretConfig = SecretConfig()

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 tzledger/config/base.yml
        - secret 只从环境变量注入，不写进 YAML
        """
        env_path = os.path.join(project_root(), ".env")
        load_dotenv(env_path)

        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        raw["secret"] = {
            "etherscan_api_key": os.getenv("ETHERSCAN_API_KEY"),
        }
        return cls(**raw)
