"""
포인트 시스템 데이터 모델

points_history 는 모든 적립 내역을 저장하는 원장(Ledger)이고,
points_balances 는 원장을 주소별로 합산한 프로젝션입니다.
잔액은 항상 원장의 합계와 일치해야 하며 원장에서 재구성할 수 있습니다.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from pointsapi.models.base import BaseModel, BigIntPK

POINTS_NUMERIC = Numeric(30, 8)
MULTIPLIER_NUMERIC = Numeric(10, 4)
# MULTIPLIER_NUMERIC 의 소수 자릿수
MULTIPLIER_QUANTUM = Decimal("0.0001")


class ActivityType(str, enum.Enum):
    """포인트 적립 사유"""

    DEPOSIT = "deposit"
    DEFI_DEPOSIT = "defi_deposit"
    HOLDING = "holding_nbkusdc"
    LP_DEX = "lp_dex"
    LENDING = "lending_collateral"
    REFERRAL = "referral"
    AUTO_COMPOUND = "auto_compound"
    ADMIN_ADJUSTMENT = "admin_adjustment"

    @property
    def default_multiplier(self) -> Decimal:
        return ACTIVITY_MULTIPLIERS.get(self, Decimal("1"))


ACTIVITY_MULTIPLIERS = {
    ActivityType.HOLDING: Decimal("1"),
    ActivityType.LP_DEX: Decimal("2"),
    ActivityType.LENDING: Decimal("3"),
    ActivityType.REFERRAL: Decimal("4"),
}


class PointsHistory(BaseModel):
    """
    포인트 원장 테이블 - 모든 적립 내역을 저장

    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 멱등성(Idempotent): idempotency_key 로 중복 적립 방지
    3. points 는 multiplier 가 적용된 최종 적립 포인트
    """

    __tablename__ = "points_history"
    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_points_history_idempotency_key"),
        Index("idx_points_history_address_created", "address", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.address"), nullable=False
    )
    points: Mapped[Decimal] = mapped_column(POINTS_NUMERIC, nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(
        MULTIPLIER_NUMERIC, nullable=False, default=Decimal("1")
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    # 중복 처리 방지용 키 (예: "deposit:0xabc...", "position:12")
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PointsBalance(BaseModel):
    """주소별 누적 포인트 (원장의 프로젝션, rank 는 저장하지 않음)"""

    __tablename__ = "points_balances"
    __table_args__ = (
        Index("idx_points_balances_ranking", "total_points", "address"),
    )

    address: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.address"), primary_key=True
    )
    total_points: Mapped[Decimal] = mapped_column(
        POINTS_NUMERIC, nullable=False, default=Decimal("0")
    )
    last_updated: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )
