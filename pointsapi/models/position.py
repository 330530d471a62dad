import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pointsapi.models.base import BaseModel, BigIntPK
from pointsapi.models.points import POINTS_NUMERIC
from pointsapi.models.strategy import Strategy


class PositionStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    WITHDRAWN = "withdrawn"  # terminal


class CompoundFrequencyEnum(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def period_days(self) -> int:
        return {"daily": 1, "weekly": 7, "monthly": 30}[self.value]


class Position(BaseModel):
    """
    사용자의 전략 포지션

    상태 전이: active -> withdrawn (단 한번, 되돌릴 수 없음)
    current_value 는 스케줄러(수익 갱신 또는 자동 복리)만, status 는 정산만 변경합니다.
    auto_compound 포지션은 수익 갱신 배치 대상에서 빠지고 자동 복리 배치가 가치를 올립니다.
    """

    __tablename__ = "positions"
    __table_args__ = (
        Index("idx_positions_status_strategy", "status", "strategy_id"),
        Index("idx_positions_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    strategy_id: Mapped[int] = mapped_column(
        ForeignKey("strategies.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    current_value: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    points_earned: Mapped[Decimal] = mapped_column(
        POINTS_NUMERIC, nullable=False, default=Decimal("0")
    )
    status: Mapped[PositionStatusEnum] = mapped_column(
        Enum(
            PositionStatusEnum,
            name="position_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=PositionStatusEnum.ACTIVE,
        nullable=False,
    )
    withdrawn_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    tx_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    auto_compound: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    compound_frequency: Mapped[CompoundFrequencyEnum] = mapped_column(
        Enum(
            CompoundFrequencyEnum,
            name="compound_frequency",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=CompoundFrequencyEnum.DAILY,
        nullable=False,
    )
    # NULL 이면 created_at 부터 계산
    last_compound_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    strategy: Mapped[Strategy] = relationship(Strategy, lazy="joined")

    @property
    def strategy_name(self) -> Optional[str]:
        return self.strategy.name if self.strategy else None
