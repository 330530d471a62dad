"""
포지션 리포지토리

상태 전이는 모두 status='active' 조건을 건 UPDATE 로 수행합니다.
동시에 두 요청이 같은 포지션을 출금해도 한쪽만 rowcount=1 을 받습니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional

from sqlalchemy import asc, desc, func, update
from sqlalchemy.orm import Session

from pointsapi.models.account import Account
from pointsapi.models.position import CompoundFrequencyEnum, Position, PositionStatusEnum
from pointsapi.models.strategy import Strategy
from pointsapi.repositories.base import BaseRepository
from pointsapi.schemas.position import PositionResponse


class AccrualTarget(NamedTuple):
    """수익 갱신 대상 포지션 (전략 APY 포함)"""

    id: int
    amount: Decimal
    created_at: Optional[datetime]
    base_apy_bps: int


class CompoundTarget(NamedTuple):
    """자동 복리 대상 포지션"""

    id: int
    user_id: int
    address: str
    current_value: Decimal
    created_at: Optional[datetime]
    last_compound_at: Optional[datetime]
    compound_frequency: CompoundFrequencyEnum
    base_apy_bps: int
    points_multiplier: Decimal

    @property
    def anchor(self) -> Optional[datetime]:
        """마지막 복리 시각 (없으면 개설 시각)"""
        return self.last_compound_at or self.created_at


class PositionRepository(BaseRepository[Position, PositionResponse]):
    def __init__(self, db: Session):
        super().__init__(Position, PositionResponse, db)

    def list_active_for_accrual(self) -> List[AccrualTarget]:
        """활성 포지션 + 전략 APY 조회 (auto_compound 포지션 제외)"""
        rows = (
            self.db.query(
                Position.id,
                Position.amount,
                Position.created_at,
                Strategy.base_apy_bps,
            )
            .join(Strategy, Strategy.id == Position.strategy_id)
            .filter(Position.status == PositionStatusEnum.ACTIVE)
            .filter(Position.auto_compound.is_(False))
            .order_by(asc(Position.id))
            .all()
        )
        return [AccrualTarget(*row) for row in rows]

    def list_auto_compound_targets(self) -> List[CompoundTarget]:
        """auto_compound 가 켜진 활성 포지션 + 전략 APY / 포인트 배수 + 소유자 주소"""
        rows = (
            self.db.query(
                Position.id,
                Position.user_id,
                Account.address,
                Position.current_value,
                Position.created_at,
                Position.last_compound_at,
                Position.compound_frequency,
                Strategy.base_apy_bps,
                Strategy.points_multiplier,
            )
            .join(Strategy, Strategy.id == Position.strategy_id)
            .join(Account, Account.id == Position.user_id)
            .filter(
                Position.status == PositionStatusEnum.ACTIVE,
                Position.auto_compound.is_(True),
            )
            .order_by(asc(Position.id))
            .all()
        )
        return [CompoundTarget(*row) for row in rows]

    def apply_compound(
        self,
        position_id: int,
        new_value: Decimal,
        points_delta: Decimal,
        compounded_at: datetime,
    ) -> int:
        """복리 반영: current_value 교체, points_earned 증가, last_compound_at 갱신 (활성 포지션만)"""
        result = self.db.execute(
            update(Position)
            .where(
                Position.id == position_id,
                Position.status == PositionStatusEnum.ACTIVE,
            )
            .values(
                current_value=new_value,
                points_earned=Position.points_earned + points_delta,
                last_compound_at=compounded_at,
            )
        )
        return result.rowcount

    def set_auto_compound(
        self,
        position_id: int,
        user_id: int,
        enabled: bool,
        frequency: Optional[CompoundFrequencyEnum] = None,
    ) -> int:
        """소유자의 활성 포지션 자동 복리 설정 변경"""
        values = {"auto_compound": enabled}
        if frequency is not None:
            values["compound_frequency"] = frequency
        result = self.db.execute(
            update(Position)
            .where(
                Position.id == position_id,
                Position.user_id == user_id,
                Position.status == PositionStatusEnum.ACTIVE,
            )
            .values(**values)
        )
        return result.rowcount

    def update_current_value(self, position_id: int, current_value: Decimal) -> int:
        """활성 포지션의 current_value 만 갱신 (출금된 포지션은 건드리지 않음)"""
        result = self.db.execute(
            update(Position)
            .where(
                Position.id == position_id,
                Position.status == PositionStatusEnum.ACTIVE,
            )
            .values(current_value=current_value)
        )
        return result.rowcount

    def get_active_owned(
        self, position_id: int, user_id: int
    ) -> Optional[PositionResponse]:
        """소유자 + 활성 상태 조건으로 포지션 조회"""
        instance = (
            self.db.query(Position)
            .filter(
                Position.id == position_id,
                Position.user_id == user_id,
                Position.status == PositionStatusEnum.ACTIVE,
            )
            .first()
        )
        return self._to_schema(instance)

    def mark_withdrawn(
        self,
        position_id: int,
        user_id: int,
        tx_hash: str,
        withdrawn_at: datetime,
    ) -> int:
        """
        active -> withdrawn 조건부 전이

        Returns:
            int: 변경된 행 수 (0 이면 이미 출금되었거나 소유자가 아님)
        """
        result = self.db.execute(
            update(Position)
            .where(
                Position.id == position_id,
                Position.user_id == user_id,
                Position.status == PositionStatusEnum.ACTIVE,
            )
            .values(
                status=PositionStatusEnum.WITHDRAWN,
                withdrawn_at=withdrawn_at,
                tx_hash=tx_hash,
            )
        )
        return result.rowcount

    def list_by_user(
        self, user_id: int, status: Optional[PositionStatusEnum] = None
    ) -> List[PositionResponse]:
        query = self.db.query(Position).filter(Position.user_id == user_id)
        if status is not None:
            query = query.filter(Position.status == status)
        positions = query.order_by(desc(Position.created_at), desc(Position.id)).all()
        return self._to_schemas(positions)

    def sum_active_values_by_strategy(self) -> Dict[int, Decimal]:
        """전략별 활성 포지션 current_value 합계"""
        rows = (
            self.db.query(Position.strategy_id, func.sum(Position.current_value))
            .filter(Position.status == PositionStatusEnum.ACTIVE)
            .group_by(Position.strategy_id)
            .all()
        )
        return {
            strategy_id: Decimal(total or 0) for strategy_id, total in rows
        }
