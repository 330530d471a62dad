from typing import Literal

from pydantic import BaseModel, Field


class WalletAuthRequest(BaseModel):
    """지갑 서명 로그인 요청"""

    address: str = Field(..., min_length=1, max_length=128)
    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)
    chain: Literal["evm", "base", "ed25519", "solana"] = "evm"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    address: str


class TokenData(BaseModel):
    user_id: int
    address: str
