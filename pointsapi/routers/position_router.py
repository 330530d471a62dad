from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from pointsapi.core.auth_middleware import get_current_user
from pointsapi.deps import get_position_service, get_settlement_service
from pointsapi.models.position import PositionStatusEnum
from pointsapi.schemas.activity import ActivityLogEntry
from pointsapi.schemas.auth import TokenData
from pointsapi.schemas.position import (
    AutoCompoundSettingsRequest,
    OpenPositionRequest,
    PositionResponse,
    SettlementReceipt,
    StrategyResponse,
    WithdrawRequest,
)
from pointsapi.services.position_service import PositionService
from pointsapi.services.settlement_service import SettlementService

router = APIRouter(tags=["positions"])


@router.get("/strategies", response_model=List[StrategyResponse])
async def list_strategies(
    position_service: PositionService = Depends(get_position_service),
) -> List[StrategyResponse]:
    """활성 전략 목록 (APY, 포인트 배수, TVL)"""
    return position_service.list_strategies()


@router.get("/positions", response_model=List[PositionResponse])
async def list_my_positions(
    status: Optional[PositionStatusEnum] = Query(None, description="active / withdrawn"),
    current_user: TokenData = Depends(get_current_user),
    position_service: PositionService = Depends(get_position_service),
) -> List[PositionResponse]:
    """내 포지션 목록 (최신순)"""
    return position_service.list_positions(current_user.user_id, status=status)


@router.get("/activity", response_model=List[ActivityLogEntry])
async def list_my_activity(
    limit: int = Query(50, ge=1, le=100),
    current_user: TokenData = Depends(get_current_user),
    position_service: PositionService = Depends(get_position_service),
) -> List[ActivityLogEntry]:
    """내 예치 / 출금 활동 내역 (최신순)"""
    return position_service.list_activity(current_user.user_id, limit=limit)


@router.post("/positions", response_model=PositionResponse)
async def open_position(
    request: OpenPositionRequest,
    current_user: TokenData = Depends(get_current_user),
    position_service: PositionService = Depends(get_position_service),
) -> PositionResponse:
    """
    전략에 포지션 개설

    amount * strategy.points_multiplier 포인트가 즉시 적립됩니다.

    HTTP Status:
        200: 개설 완료
        404: 비활성/없는 전략
        422: amount <= 0
    """
    return position_service.open_position(
        user_id=current_user.user_id,
        strategy_id=request.strategy_id,
        amount=request.amount,
        tx_hash=request.tx_hash,
        auto_compound=request.auto_compound,
        compound_frequency=request.compound_frequency,
    )


@router.patch("/positions/{position_id}/auto-compound", response_model=PositionResponse)
async def update_auto_compound(
    request: AutoCompoundSettingsRequest,
    position_id: int = Path(..., gt=0),
    current_user: TokenData = Depends(get_current_user),
    position_service: PositionService = Depends(get_position_service),
) -> PositionResponse:
    """
    자동 복리 켜기/끄기 및 주기 변경 (daily / weekly / monthly)

    HTTP Status:
        200: 변경 완료
        409: 없는 포지션, 타인 소유, 또는 이미 출금됨
    """
    return position_service.set_auto_compound(
        user_id=current_user.user_id,
        position_id=position_id,
        enabled=request.enabled,
        frequency=request.compound_frequency,
    )


@router.post("/positions/{position_id}/withdraw", response_model=SettlementReceipt)
async def withdraw_position(
    position_id: int = Path(..., gt=0),
    request: Optional[WithdrawRequest] = Body(None),
    current_user: TokenData = Depends(get_current_user),
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> SettlementReceipt:
    """
    포지션 출금 (정확히 한 번)

    HTTP Status:
        200: 출금 완료, 정산 영수증 반환
        401: 인증 필요
        409: 없는 포지션, 타인 소유, 또는 이미 출금됨
        503: 커밋 실패 (재시도 가능)
    """
    return settlement_service.withdraw(
        position_id=position_id,
        caller_user_id=current_user.user_id,
        tx_hash=request.tx_hash if request else None,
    )
