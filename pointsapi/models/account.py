import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from pointsapi.models.base import BaseModel, BigIntPK


class ChainEnum(str, enum.Enum):
    """지갑 서명 방식"""

    EVM = "evm"
    SOLANA = "solana"


def normalize_address(address: str) -> str:
    """주소 비교/저장용 정규화 (공백 제거 + 소문자)"""
    return address.strip().lower()


def detect_chain(address: str) -> str:
    """0x 로 시작하면 EVM, 그 외(base58)는 Solana 주소로 간주"""
    if address.strip().lower().startswith("0x"):
        return ChainEnum.EVM.value
    return ChainEnum.SOLANA.value


class Account(BaseModel):
    """
    체인 주소로 식별되는 사용자 계정

    첫 포인트 적립 또는 첫 지갑 로그인 시 생성됩니다.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False, index=True
    )
    chain: Mapped[str] = mapped_column(
        String(20), default=ChainEnum.EVM.value, nullable=False
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, address={self.address}, chain={self.chain})>"
