import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from pointsapi.models.base import BaseModel, BigIntPK
from pointsapi.models.points import POINTS_NUMERIC


class DepositStatusEnum(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class Deposit(BaseModel):
    """
    온체인 입금 기록

    tx_hash 유니크 인덱스가 중복 적립을 막는 최종 방어선입니다.
    (성능용 인덱스가 아니라 정합성을 위한 제약)
    """

    __tablename__ = "deposits"
    __table_args__ = (UniqueConstraint("tx_hash", name="uq_deposits_tx_hash"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    tx_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    address: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.address"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    chain: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[DepositStatusEnum] = mapped_column(
        Enum(
            DepositStatusEnum,
            name="deposit_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=DepositStatusEnum.PENDING,
        nullable=False,
    )
    points_awarded: Mapped[Decimal] = mapped_column(
        POINTS_NUMERIC, nullable=False, default=Decimal("0")
    )
    block_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    event_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
