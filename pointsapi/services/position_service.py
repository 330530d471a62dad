from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from pointsapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from pointsapi.models.points import ActivityType
from pointsapi.models.position import CompoundFrequencyEnum, PositionStatusEnum
from pointsapi.repositories.account_repository import AccountRepository
from pointsapi.repositories.activity_repository import ActivityRepository
from pointsapi.repositories.position_repository import PositionRepository
from pointsapi.repositories.strategy_repository import StrategyRepository
from pointsapi.schemas.activity import ActivityLogEntry
from pointsapi.schemas.position import PositionResponse, StrategyResponse
from pointsapi.services.point_service import PointService
import logging

logger = logging.getLogger(__name__)


class PositionService:
    """전략 포지션 개설 / 조회"""

    def __init__(self, db: Session):
        self.db = db
        self.position_repo = PositionRepository(db)
        self.strategy_repo = StrategyRepository(db)
        self.account_repo = AccountRepository(db)
        self.activity_repo = ActivityRepository(db)
        self.point_service = PointService(db)

    def list_strategies(self) -> List[StrategyResponse]:
        return self.strategy_repo.list_active()

    def list_positions(
        self, user_id: int, status: Optional[PositionStatusEnum] = None
    ) -> List[PositionResponse]:
        return self.position_repo.list_by_user(user_id, status=status)

    def list_activity(self, user_id: int, limit: int = 50) -> List[ActivityLogEntry]:
        """예치 / 출금 활동 내역 (최신순)"""
        return self.activity_repo.list_by_user(user_id, limit=limit)

    def open_position(
        self,
        user_id: int,
        strategy_id: int,
        amount: Decimal,
        tx_hash: Optional[str] = None,
        auto_compound: bool = False,
        compound_frequency: CompoundFrequencyEnum = CompoundFrequencyEnum.DAILY,
    ) -> PositionResponse:
        """
        포지션 개설

        current_value = amount 로 시작하고, amount * strategy.points_multiplier 포인트를
        position:<id> 키로 같은 트랜잭션에서 적립합니다.
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError("Amount must be positive", details={"amount": str(amount)})

        strategy = self.strategy_repo.get_active(strategy_id)
        if strategy is None:
            raise NotFoundError(f"Active strategy not found: {strategy_id}")

        account = self.account_repo.get_by_id(user_id)
        if account is None:
            raise NotFoundError(f"Account not found: {user_id}")

        try:
            position = self.position_repo.create(
                commit=False,
                user_id=user_id,
                strategy_id=strategy_id,
                amount=amount,
                current_value=amount,
                points_earned=Decimal("0"),
                status=PositionStatusEnum.ACTIVE,
                tx_hash=tx_hash,
                auto_compound=auto_compound,
                compound_frequency=compound_frequency,
            )
            entry = self.point_service.credit(
                address=account.address,
                points=amount,
                multiplier=strategy.points_multiplier,
                activity_type=ActivityType.DEFI_DEPOSIT,
                idempotency_key=f"position:{position.id}",
                description=f"Deposit {amount} into {strategy.name}",
                commit=False,
            )
            position = self.position_repo.update(
                position.id, commit=False, points_earned=entry.points
            )
            self.activity_repo.log(
                user_id=user_id,
                activity_type="defi_deposit",
                description=f"Deposited {amount} into {strategy.name}",
                meta={
                    "position_id": position.id,
                    "strategy": strategy.name,
                    "amount": str(amount),
                    "points_earned": str(entry.points),
                },
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to open position for user {user_id}: {str(e)}")
            raise

        logger.info(
            f"User {user_id} opened position {position.id} in {strategy.name}: "
            f"{amount}, {entry.points} points"
        )
        return position

    def set_auto_compound(
        self,
        user_id: int,
        position_id: int,
        enabled: bool,
        frequency: Optional[CompoundFrequencyEnum] = None,
    ) -> PositionResponse:
        """본인 활성 포지션의 자동 복리 설정 변경"""
        try:
            updated = self.position_repo.set_auto_compound(
                position_id, user_id, enabled, frequency
            )
            if not updated:
                raise ConflictError(
                    "Position not found or already withdrawn",
                    details={"position_id": position_id},
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"User {user_id} set auto-compound={enabled} on position {position_id}"
            + (f" ({frequency.value})" if frequency else "")
        )
        return self.position_repo.get_by_id(position_id)
