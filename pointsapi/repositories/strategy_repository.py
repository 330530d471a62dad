from decimal import Decimal
from typing import List, Optional

from sqlalchemy import asc, update
from sqlalchemy.orm import Session

from pointsapi.models.strategy import Strategy
from pointsapi.repositories.base import BaseRepository
from pointsapi.schemas.position import StrategyResponse


class StrategyRepository(BaseRepository[Strategy, StrategyResponse]):
    """DeFi 전략 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Strategy, StrategyResponse, db)

    def list_active(self) -> List[StrategyResponse]:
        strategies = (
            self.db.query(self.model_class)
            .filter(self.model_class.is_active.is_(True))
            .order_by(asc(self.model_class.id))
            .all()
        )
        return self._to_schemas(strategies)

    def get_active(self, strategy_id: int) -> Optional[StrategyResponse]:
        instance = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == strategy_id,
                self.model_class.is_active.is_(True),
            )
            .first()
        )
        return self._to_schema(instance)

    def list_ids(self) -> List[int]:
        return [
            row[0]
            for row in self.db.query(self.model_class.id)
            .order_by(asc(self.model_class.id))
            .all()
        ]

    def set_tvl(self, strategy_id: int, tvl: Decimal) -> int:
        result = self.db.execute(
            update(self.model_class)
            .where(self.model_class.id == strategy_id)
            .values(tvl=tvl)
        )
        return result.rowcount
