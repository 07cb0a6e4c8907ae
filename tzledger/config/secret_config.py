from typing import Optional

from pydantic import BaseModel


class SecretConfig(BaseModel):
    etherscan_api_key: Optional[str] = None
