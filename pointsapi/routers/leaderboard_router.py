from typing import Optional

from fastapi import APIRouter, Depends, Query

from pointsapi.deps import get_leaderboard_service
from pointsapi.schemas.leaderboard import LeaderboardPage
from pointsapi.services.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardPage)
async def get_leaderboard(
    page: int = Query(1, description="1부터 시작하는 페이지 번호"),
    limit: Optional[int] = Query(None, description="페이지 크기 (1~100)"),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
) -> LeaderboardPage:
    """
    포인트 순위 조회

    total_points 내림차순, 동점이면 주소 오름차순으로 정렬됩니다.
    rank 는 (page - 1) * limit + index + 1 입니다.

    HTTP Status:
        200: 성공
        422: page < 1 또는 limit 범위 초과
    """
    return leaderboard_service.get_page(page=page, limit=limit)
