from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from pointsapi.models.points import ActivityType


class PointsHistoryEntry(BaseModel):
    """포인트 원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    address: str = Field(..., description="지갑 주소")
    points: Decimal = Field(..., description="적립 포인트 (multiplier 적용 후)")
    multiplier: Decimal = Field(..., description="적용 배수")
    activity_type: str = Field(..., description="적립 사유")
    idempotency_key: Optional[str] = Field(None, description="중복 방지 키")
    description: Optional[str] = Field(None, description="설명")
    created_at: Optional[datetime] = Field(None, description="적립 시각")

    class Config:
        from_attributes = True


class UserPointsResponse(BaseModel):
    """사용자 포인트 + 순위"""

    address: str
    total_points: Decimal = Field(Decimal("0"), description="누적 포인트")
    rank: Optional[int] = Field(None, description="현재 순위 (기록 없으면 null)")
    last_updated: Optional[datetime] = None


class PointsHistoryResponse(BaseModel):
    address: str
    entries: List[PointsHistoryEntry]


class AdminCreditRequest(BaseModel):
    """관리자 포인트 지급 요청"""

    address: str = Field(..., min_length=1, max_length=128)
    points: Decimal = Field(..., gt=0, description="배수 적용 전 포인트")
    activity_type: ActivityType = ActivityType.ADMIN_ADJUSTMENT
    multiplier: Optional[Decimal] = Field(
        None, gt=0, description="미지정 시 activity_type 기본 배수"
    )
    idempotency_key: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=255)


class PointsIntegrityCheckResponse(BaseModel):
    """포인트 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    address: Optional[str] = Field(None, description="주소 (단일 사용자 검증 시)")
    calculated_balance: Optional[Decimal] = Field(None, description="원장 합계")
    recorded_balance: Optional[Decimal] = Field(None, description="기록된 잔액")
    total_history_points: Optional[Decimal] = Field(None, description="전체 원장 합계")
    total_balance_points: Optional[Decimal] = Field(None, description="전체 잔액 합계")
    mismatched_addresses: Optional[List[str]] = None
    entry_count: Optional[int] = Field(None, description="항목 수")
    verified_at: Optional[str] = Field(None, description="검증 시간")


class HoldingPointsRunResult(BaseModel):
    """보유 포인트 배치 결과"""

    ran_at: datetime
    tick: str = Field(..., description="적립 구간 식별자 (멱등 키에 포함)")
    total_users: int = 0
    processed: int = 0
    skipped: int = Field(0, description="온체인 조회 불가 계정 (Solana)")
    errored: int = 0
    entries_created: int = 0
    points_awarded: Decimal = Decimal("0")
