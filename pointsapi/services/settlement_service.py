"""
포지션 출금 정산 서비스

active -> withdrawn 전이는 포지션당 정확히 한 번만 성공합니다.
소유자/상태 확인과 상태 변경 모두 user_id 와 status='active' 조건을 포함하므로
같은 포지션에 대한 두 번째 출금 요청은 NotFoundOrAlreadySettledError 가 됩니다.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pointsapi.core.exceptions import CommitFailedError, NotFoundOrAlreadySettledError
from pointsapi.repositories.activity_repository import ActivityRepository
from pointsapi.repositories.position_repository import PositionRepository
from pointsapi.schemas.position import SettlementReceipt
from pointsapi.utils.timezone_utils import utc_now
import logging

logger = logging.getLogger(__name__)

WITHDRAWAL_ACTIVITY = "vault_withdrawal"


class SettlementService:
    def __init__(self, db: Session):
        self.db = db
        self.position_repo = PositionRepository(db)
        self.activity_repo = ActivityRepository(db)

    def withdraw(
        self, position_id: int, caller_user_id: int, tx_hash: Optional[str] = None
    ) -> SettlementReceipt:
        """포지션 출금

        Args:
            position_id: 출금할 포지션 ID
            caller_user_id: 요청한 사용자 ID (소유자여야 함)
            tx_hash: 출금 트랜잭션 해시 (미지정 시 simulated_<ms>)

        Returns:
            SettlementReceipt: 원금, 최종 가치, 수익(음수 가능), 적립 포인트

        Raises:
            NotFoundOrAlreadySettledError: 없거나, 타인 소유이거나, 이미 출금된 포지션
            CommitFailedError: 상태 변경 커밋 실패 (재시도 가능)
        """
        position = self.position_repo.get_active_owned(position_id, caller_user_id)
        if position is None:
            raise NotFoundOrAlreadySettledError(position_id)

        withdrawn_at = utc_now()
        tx_hash = tx_hash or f"simulated_{int(withdrawn_at.timestamp() * 1000)}"
        final_yield = position.current_value - position.amount
        strategy_name = position.strategy_name or ""

        try:
            updated = self.position_repo.mark_withdrawn(
                position_id, caller_user_id, tx_hash, withdrawn_at
            )
            if updated == 0:
                # 조회와 갱신 사이에 다른 요청이 먼저 출금함
                self.db.rollback()
                raise NotFoundOrAlreadySettledError(position_id)

            self.activity_repo.log(
                user_id=caller_user_id,
                activity_type=WITHDRAWAL_ACTIVITY,
                description=f"Withdrew {position.current_value} from {strategy_name}",
                meta={
                    "position_id": position_id,
                    "strategy": strategy_name,
                    "amount": str(position.amount),
                    "final_value": str(position.current_value),
                    "yield": str(final_yield),
                    "points_earned": str(position.points_earned),
                    "tx_hash": tx_hash,
                },
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to commit withdrawal of position {position_id}: {str(e)}")
            raise CommitFailedError(position_id, reason=str(e))

        logger.info(
            f"Position {position_id} withdrawn by user {caller_user_id}: "
            f"principal={position.amount} final={position.current_value} yield={final_yield}"
        )
        return SettlementReceipt(
            position_id=position_id,
            strategy_name=strategy_name,
            principal=position.amount,
            final_value=position.current_value,
            final_yield=final_yield,
            points_earned=position.points_earned,
            tx_hash=tx_hash,
            withdrawn_at=withdrawn_at,
        )
