"""
입금 이벤트 수집 라우터

이벤트 수집기 / 백필 잡 등 내부 호출자만 사용하며 AUTH_TOKEN Bearer 인증이 필요합니다.
재시도해도 안전합니다 (tx_hash 기준 멱등).
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from dependency_injector.wiring import inject

from pointsapi.core.auth_middleware import verify_internal_token
from pointsapi.deps import get_deposit_service
from pointsapi.schemas.deposit import (
    BackfillRequest,
    BackfillResult,
    DepositEvent,
    DepositResponse,
    IngestResult,
)
from pointsapi.services.deposit_service import DepositService

router = APIRouter(prefix="/deposits", tags=["deposits"])


@router.post("/ingest", response_model=IngestResult)
@inject
async def ingest_deposit(
    event: DepositEvent,
    _: None = Depends(verify_internal_token),
    deposit_service: DepositService = Depends(get_deposit_service),
) -> IngestResult:
    """
    입금 이벤트 1건 수집

    HTTP Status:
        200: 적립 완료(credited=true) 또는 이미 처리됨(credited=false)
        401: 내부 토큰 불일치
        422: 잘못된 이벤트 (재시도 금지)
        503: 저장소 장애 (재시도 가능)
    """
    return deposit_service.ingest(event)


@router.post("/backfill", response_model=BackfillResult)
@inject
async def backfill_deposits(
    request: BackfillRequest,
    _: None = Depends(verify_internal_token),
    deposit_service: DepositService = Depends(get_deposit_service),
) -> BackfillResult:
    """
    과거 입금 일괄 처리

    events 가 있으면 그 목록을, 없으면 from_block ~ to_block 구간의
    vault Deposit 로그를 스캔해 처리합니다. 건별 실패는 errors 에 기록됩니다.
    """
    if request.events is not None:
        return deposit_service.backfill(request.events)
    return deposit_service.backfill_range(
        from_block=request.from_block, to_block=request.to_block
    )


@router.post("/{tx_hash}/confirm", response_model=DepositResponse)
@inject
async def confirm_deposit(
    tx_hash: str,
    _: None = Depends(verify_internal_token),
    deposit_service: DepositService = Depends(get_deposit_service),
) -> DepositResponse:
    """외부 확인 신호 수신: pending -> confirmed (이미 confirmed 면 그대로)"""
    return deposit_service.confirm(tx_hash)


@router.get("/address/{address}", response_model=List[DepositResponse])
@inject
async def list_deposits(
    address: str,
    limit: int = Query(50, ge=1, le=100),
    _: None = Depends(verify_internal_token),
    deposit_service: DepositService = Depends(get_deposit_service),
) -> List[DepositResponse]:
    return deposit_service.list_deposits(address, limit=limit)
