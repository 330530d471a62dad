from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from pointsapi.models.base import BaseModel, BigIntPK


class Strategy(BaseModel):
    """
    DeFi 수익 전략

    tvl 은 활성 포지션 current_value 의 합계로 스케줄러가 주기적으로 다시 계산하는
    파생 값입니다. 정산 계산에는 사용하지 않습니다.
    """

    __tablename__ = "strategies"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    protocol_type: Mapped[str] = mapped_column(String(50), nullable=False)
    chain: Mapped[str] = mapped_column(String(20), default="base", nullable=False)
    # 1250 = 12.50% APY
    base_apy_bps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), nullable=False, default=Decimal("1")
    )
    tvl: Mapped[Decimal] = mapped_column(
        Numeric(38, 18), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
