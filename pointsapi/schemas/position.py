from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from pointsapi.models.position import CompoundFrequencyEnum, PositionStatusEnum


class StrategyResponse(BaseModel):
    id: int
    name: str
    protocol_type: str
    chain: str
    base_apy_bps: int
    points_multiplier: Decimal
    tvl: Decimal
    is_active: bool

    class Config:
        from_attributes = True


class PositionResponse(BaseModel):
    id: int
    user_id: int
    strategy_id: int
    amount: Decimal
    current_value: Decimal
    points_earned: Decimal
    status: PositionStatusEnum
    strategy_name: Optional[str] = None
    tx_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    auto_compound: bool = False
    compound_frequency: CompoundFrequencyEnum = CompoundFrequencyEnum.DAILY
    last_compound_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OpenPositionRequest(BaseModel):
    strategy_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)
    tx_hash: Optional[str] = Field(None, max_length=128)
    auto_compound: bool = False
    compound_frequency: CompoundFrequencyEnum = CompoundFrequencyEnum.DAILY


class AutoCompoundSettingsRequest(BaseModel):
    enabled: bool
    compound_frequency: Optional[CompoundFrequencyEnum] = Field(
        None, description="미지정 시 기존 주기 유지"
    )


class WithdrawRequest(BaseModel):
    tx_hash: Optional[str] = Field(None, max_length=128)


class SettlementReceipt(BaseModel):
    """출금 정산 결과"""

    position_id: int
    strategy_name: str
    principal: Decimal
    final_value: Decimal
    final_yield: Decimal = Field(..., description="current_value - amount (음수 가능)")
    points_earned: Decimal
    tx_hash: str
    withdrawn_at: datetime


class AccrualRunResult(BaseModel):
    """수익 갱신 배치 결과"""

    ran_at: datetime
    next_run_at: Optional[datetime] = Field(
        None, description="ran_at + YIELD_ACCRUAL_INTERVAL_MINUTES (스케줄러 주기)"
    )
    total_positions: int = 0
    updated: int = 0
    failed: int = 0
    strategies_updated: int = 0


class CompoundOutcome(BaseModel):
    position_id: int
    success: bool
    yield_earned: Optional[Decimal] = None
    points_earned: Optional[Decimal] = None
    new_value: Optional[Decimal] = None
    error: Optional[str] = None


class AutoCompoundRunResult(BaseModel):
    """자동 복리 배치 결과"""

    ran_at: datetime
    total_positions: int = 0
    compounded: int = 0
    not_due: int = 0
    failed: int = 0
    points_awarded: Decimal = Decimal("0")
    results: List[CompoundOutcome] = Field(default_factory=list)
