"""
포인트 API 라우터

공개 엔드포인트:
- GET /points/{address}: 주소의 누적 포인트 + 순위
- GET /points/{address}/history: 주소의 적립 내역 (최신순)

관리자용 엔드포인트:
- POST /points/admin/credit: 포인트 지급
- GET /points/admin/integrity/global: 전체 원장/잔액 정합성 검증
- GET /points/admin/integrity/{address}: 주소별 정합성 검증
- POST /points/admin/rebuild/{address}: 원장에서 잔액 재구성

인증 및 권한:
- 관리자 엔드포인트는 Bearer 토큰 + is_admin=True 필요
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from pointsapi.core.auth_middleware import require_admin
from pointsapi.deps import get_leaderboard_service, get_point_service
from pointsapi.schemas.account import AccountResponse
from pointsapi.schemas.points import (
    AdminCreditRequest,
    PointsHistoryEntry,
    PointsHistoryResponse,
    PointsIntegrityCheckResponse,
    UserPointsResponse,
)
from pointsapi.services.leaderboard_service import LeaderboardService
from pointsapi.services.point_service import PointService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/{address}", response_model=UserPointsResponse)
async def get_user_points(
    address: str = Path(..., description="지갑 주소 (대소문자 무시)"),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
) -> UserPointsResponse:
    """
    주소의 누적 포인트와 현재 순위

    기록이 없는 주소는 total_points=0, rank=null 로 응답합니다.
    """
    return leaderboard_service.get_user_points(address)


@router.get("/{address}/history", response_model=PointsHistoryResponse)
async def get_points_history(
    address: str = Path(..., description="지갑 주소"),
    limit: Optional[int] = Query(None, description="최대 항목 수 (기본 30)"),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
) -> PointsHistoryResponse:
    """적립 내역 최신순 조회"""
    return leaderboard_service.get_points_history(address, limit=limit)


# ============================================================================
# 관리자 전용 엔드포인트
# ============================================================================


@router.post("/admin/credit", response_model=PointsHistoryEntry)
async def admin_credit_points(
    request: AdminCreditRequest,
    current_admin: AccountResponse = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsHistoryEntry:
    """
    관리자 포인트 지급

    multiplier 를 생략하면 activity_type 의 기본 배수
    (holding 1x, lp_dex 2x, lending 3x, referral 4x, 그 외 1x) 가 적용됩니다.
    같은 idempotency_key 로 다시 호출하면 기존 항목을 그대로 반환합니다.
    """
    logger.info(
        f"Admin {current_admin.address} credits {request.points} to {request.address}"
    )
    return point_service.admin_credit(request)


@router.get("/admin/integrity/global", response_model=PointsIntegrityCheckResponse)
async def verify_global_integrity(
    _current_admin: AccountResponse = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    """전체 원장 합계와 잔액 합계, 주소별 불일치 검증"""
    return point_service.verify_global_integrity()


@router.get("/admin/integrity/{address}", response_model=PointsIntegrityCheckResponse)
async def verify_user_integrity(
    address: str,
    _current_admin: AccountResponse = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    """주소별 원장 합계 = 잔액 검증"""
    return point_service.verify_user_integrity(address)


@router.post("/admin/rebuild/{address}", response_model=PointsIntegrityCheckResponse)
async def rebuild_balance(
    address: str,
    _current_admin: AccountResponse = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    """원장에서 잔액 프로젝션 재구성"""
    return point_service.rebuild_balance(address)
