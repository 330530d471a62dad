from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, asc, desc, or_
from sqlalchemy.orm import Session

from pointsapi.models.account import normalize_address
from pointsapi.models.points import PointsBalance
from pointsapi.repositories.base import BaseRepository
from pointsapi.schemas.leaderboard import LeaderboardEntry
from pointsapi.schemas.points import UserPointsResponse


class LeaderboardRepository(BaseRepository[PointsBalance, LeaderboardEntry]):
    """
    points_balances 기반 순위 조회

    정렬 기준은 항상 total_points DESC, address ASC 입니다.
    동점자도 주소로 순서가 고정되므로 같은 데이터에 대해 페이지 결과가 결정적입니다.
    순위는 저장하지 않고 조회 시점에 계산합니다.
    """

    def __init__(self, db: Session):
        super().__init__(PointsBalance, LeaderboardEntry, db)

    def get_page(self, offset: int, limit: int) -> List[LeaderboardEntry]:
        rows = (
            self.db.query(PointsBalance.address, PointsBalance.total_points)
            .order_by(desc(PointsBalance.total_points), asc(PointsBalance.address))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [
            LeaderboardEntry(
                rank=offset + index + 1,
                address=address,
                total_points=Decimal(total_points),
            )
            for index, (address, total_points) in enumerate(rows)
        ]

    def get_user_points(self, address: str) -> Optional[UserPointsResponse]:
        """주소의 포인트와 순위 (잔액 행이 없으면 None)"""
        # 잔액은 core upsert 로만 갱신되므로 엔티티 대신 컬럼을 조회
        balance = (
            self.db.query(
                PointsBalance.address,
                PointsBalance.total_points,
                PointsBalance.last_updated,
            )
            .filter(PointsBalance.address == normalize_address(address))
            .first()
        )
        if balance is None:
            return None

        # 같은 정렬에서 앞에 있는 행의 수 + 1
        ahead = (
            self.db.query(PointsBalance)
            .filter(
                or_(
                    PointsBalance.total_points > balance.total_points,
                    and_(
                        PointsBalance.total_points == balance.total_points,
                        PointsBalance.address < balance.address,
                    ),
                )
            )
            .count()
        )
        return UserPointsResponse(
            address=balance.address,
            total_points=Decimal(balance.total_points),
            rank=ahead + 1,
            last_updated=balance.last_updated,
        )
