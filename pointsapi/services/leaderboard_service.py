from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.core.exceptions import ValidationError
from pointsapi.models.account import normalize_address
from pointsapi.repositories.leaderboard_repository import LeaderboardRepository
from pointsapi.repositories.points_repository import PointsRepository
from pointsapi.schemas.leaderboard import LeaderboardPage
from pointsapi.schemas.points import PointsHistoryResponse, UserPointsResponse
import logging

logger = logging.getLogger(__name__)


class LeaderboardService:
    """
    순위 / 사용자 포인트 조회

    읽기 전용이며 락을 잡지 않습니다. 페이지 사이에 잔액이 바뀌면
    중복/누락이 생길 수 있지만, 같은 데이터에 대해서는 결과가 항상 같습니다.
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.leaderboard_repo = LeaderboardRepository(db)
        self.points_repo = PointsRepository(db)

    def get_page(self, page: int = 1, limit: Optional[int] = None) -> LeaderboardPage:
        limit = self.settings.LEADERBOARD_DEFAULT_LIMIT if limit is None else limit
        if page < 1:
            raise ValidationError("page must be >= 1", details={"page": page})
        if limit < 1 or limit > self.settings.LEADERBOARD_MAX_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {self.settings.LEADERBOARD_MAX_LIMIT}",
                details={"limit": limit},
            )

        offset = (page - 1) * limit
        entries = self.leaderboard_repo.get_page(offset=offset, limit=limit)
        total = self.leaderboard_repo.count()
        return LeaderboardPage(page=page, limit=limit, total=total, entries=entries)

    def get_user_points(self, address: str) -> UserPointsResponse:
        """기록이 없는 주소는 0 포인트, rank=None"""
        if not address or not address.strip():
            raise ValidationError("Address is required")

        result = self.leaderboard_repo.get_user_points(address)
        if result is None:
            return UserPointsResponse(
                address=normalize_address(address), total_points=Decimal("0"), rank=None
            )
        return result

    def get_points_history(
        self, address: str, limit: Optional[int] = None
    ) -> PointsHistoryResponse:
        limit = self.settings.POINTS_HISTORY_DEFAULT_LIMIT if limit is None else limit
        if not address or not address.strip():
            raise ValidationError("Address is required")
        if limit < 1 or limit > self.settings.LEADERBOARD_MAX_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {self.settings.LEADERBOARD_MAX_LIMIT}",
                details={"limit": limit},
            )

        entries = self.points_repo.get_history(address, limit=limit)
        return PointsHistoryResponse(address=normalize_address(address), entries=entries)
