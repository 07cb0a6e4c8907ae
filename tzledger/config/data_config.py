#!filepath: tzledger/config/data_config.py
from pydantic import BaseModel


class DataConfig(BaseModel):
    data_dir: str = "data"
    strict_registrations: bool = False
