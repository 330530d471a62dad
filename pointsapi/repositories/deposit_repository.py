from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import desc, update
from sqlalchemy.orm import Session

from pointsapi.models.account import normalize_address
from pointsapi.models.deposit import Deposit, DepositStatusEnum
from pointsapi.repositories.base import BaseRepository
from pointsapi.schemas.deposit import DepositResponse


class DepositRepository(BaseRepository[Deposit, DepositResponse]):
    """온체인 입금 기록 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Deposit, DepositResponse, db)

    def get_by_tx_hash(self, tx_hash: str) -> Optional[DepositResponse]:
        instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.tx_hash == tx_hash)
            .first()
        )
        return self._to_schema(instance)

    def add_deposit(
        self,
        tx_hash: str,
        address: str,
        amount: Decimal,
        chain: str,
        points_awarded: Decimal,
        block_number: Optional[int] = None,
        event_timestamp: Optional[datetime] = None,
    ) -> DepositResponse:
        """
        입금 기록 추가 (flush 만 수행)

        tx_hash 가 이미 있으면 flush 에서 IntegrityError 가 발생합니다.
        """
        return self.create(
            commit=False,
            tx_hash=tx_hash,
            address=normalize_address(address),
            amount=amount,
            chain=chain,
            status=DepositStatusEnum.PENDING,
            points_awarded=points_awarded,
            block_number=block_number,
            event_timestamp=event_timestamp,
        )

    def confirm(self, tx_hash: str) -> int:
        """pending -> confirmed 조건부 전이, 변경된 행 수 반환"""
        result = self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.tx_hash == tx_hash,
                self.model_class.status == DepositStatusEnum.PENDING,
            )
            .values(status=DepositStatusEnum.CONFIRMED)
        )
        return result.rowcount

    def list_by_address(self, address: str, limit: int = 50) -> List[DepositResponse]:
        deposits = (
            self.db.query(self.model_class)
            .filter(self.model_class.address == normalize_address(address))
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(deposits)
