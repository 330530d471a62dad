from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from pointsapi.models.deposit import DepositStatusEnum


class DepositEvent(BaseModel):
    """
    온체인 Deposit 이벤트

    필드 검증은 서비스 계층에서 수행합니다 (InvalidEventError 로 변환하기 위해
    여기서는 Optional 로 받습니다).
    """

    address: Optional[str] = None
    amount: Optional[Decimal] = None
    tx_hash: Optional[str] = None
    timestamp_seconds: Optional[int] = None
    block_number: Optional[int] = None
    log_index: Optional[int] = None
    multiplier: Optional[Decimal] = Field(
        None, description="프로모션 배수 (미지정 시 설정값)"
    )


class IngestResult(BaseModel):
    tx_hash: str
    credited: bool
    points_awarded: Decimal = Decimal("0")
    message: str = ""


class BackfillError(BaseModel):
    tx_hash: Optional[str] = None
    error: str


class BackfillResult(BaseModel):
    total_events: int = 0
    succeeded: int = 0
    skipped: int = 0
    errored: int = 0
    points_awarded: Decimal = Decimal("0")
    errors: List[BackfillError] = Field(default_factory=list)


class BackfillRequest(BaseModel):
    """events 가 주어지면 그대로 처리하고, 없으면 블록 구간을 스캔합니다."""

    events: Optional[List[DepositEvent]] = None
    from_block: Optional[int] = Field(None, ge=0)
    to_block: Optional[int] = Field(None, ge=0)


class DepositResponse(BaseModel):
    id: int
    tx_hash: str
    address: str
    amount: Decimal
    chain: str
    status: DepositStatusEnum
    points_awarded: Decimal
    block_number: Optional[int] = None
    event_timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
