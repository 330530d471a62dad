from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pointsapi.core.auth_middleware import verify_internal_token
from pointsapi.deps import (
    get_auto_compound_service,
    get_holding_points_service,
    get_yield_service,
)
from pointsapi.schemas.points import HoldingPointsRunResult
from pointsapi.schemas.position import AccrualRunResult, AutoCompoundRunResult
from pointsapi.services.auto_compound_service import AutoCompoundService
from pointsapi.services.holding_points_service import HoldingPointsService
from pointsapi.services.yield_service import YieldService

router = APIRouter(
    prefix="/batch",
    tags=["batch"],
)


@router.post("/yield-accrual", response_model=AccrualRunResult)
async def run_yield_accrual(
    now: Optional[datetime] = Query(None, description="기준 시각 (미지정 시 현재 UTC)"),
    _: None = Depends(verify_internal_token),
    yield_service: YieldService = Depends(get_yield_service),
) -> AccrualRunResult:
    """
    활성 포지션 수익 갱신 + 전략 TVL 재계산

    스케줄러(cron)가 YIELD_ACCRUAL_INTERVAL_MINUTES 주기로 호출합니다.
    동시 실행 방지는 호출 측에서 보장해야 합니다.
    """
    return yield_service.run_accrual(now=now)


@router.post("/auto-compound", response_model=AutoCompoundRunResult)
async def run_auto_compound(
    now: Optional[datetime] = Query(None, description="기준 시각 (미지정 시 현재 UTC)"),
    _: None = Depends(verify_internal_token),
    auto_compound_service: AutoCompoundService = Depends(get_auto_compound_service),
) -> AutoCompoundRunResult:
    """주기가 지난 auto_compound 포지션에 수익을 더하고 포인트 적립"""
    return auto_compound_service.run(now=now)


@router.post("/holding-points", response_model=HoldingPointsRunResult)
async def run_holding_points(
    now: Optional[datetime] = Query(None, description="기준 시각 (미지정 시 현재 UTC)"),
    _: None = Depends(verify_internal_token),
    holding_points_service: HoldingPointsService = Depends(get_holding_points_service),
) -> HoldingPointsRunResult:
    """
    온체인 보유량 기반 포인트 적립

    HOLDING_POINTS_INTERVAL_MINUTES 구간당 계정/사유별로 한 번만 적립됩니다.
    """
    return holding_points_service.run(now=now)
