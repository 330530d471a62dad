from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from pointsapi.models.account import Account, ChainEnum, normalize_address
from pointsapi.repositories.base import BaseRepository, dialect_insert
from pointsapi.schemas.account import AccountResponse


class AccountRepository(BaseRepository[Account, AccountResponse]):
    """주소 기반 계정 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Account, AccountResponse, db)

    def get_by_address(self, address: str) -> Optional[AccountResponse]:
        """주소로 계정 조회 (대소문자 무시)"""
        instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.address == normalize_address(address))
            .first()
        )
        return self._to_schema(instance)

    def get_or_create(
        self, address: str, chain: str = ChainEnum.EVM.value
    ) -> AccountResponse:
        """
        계정을 조회하고 없으면 생성합니다.

        동시에 같은 주소로 생성 요청이 들어와도 ON CONFLICT DO NOTHING 으로
        한 행만 남습니다. 커밋은 호출자의 트랜잭션에 맡깁니다.
        """
        normalized = normalize_address(address)
        existing = self.get_by_address(normalized)
        if existing:
            return existing

        stmt = (
            dialect_insert(self.db, self.model_class)
            .values(address=normalized, chain=chain, is_active=True, is_admin=False)
            .on_conflict_do_nothing(index_elements=["address"])
        )
        self.db.execute(stmt)
        return self.get_by_address(normalized)

    def touch_login(
        self, account_id: int, logged_in_at: datetime, commit: bool = True
    ) -> Optional[AccountResponse]:
        """마지막 로그인 시각 갱신"""
        return self.update(account_id, commit=commit, last_login_at=logged_in_at)

    def list_active(self, chain: Optional[str] = None) -> List[AccountResponse]:
        """활성 계정 목록 (id 순)"""
        query = self.db.query(self.model_class).filter(self.model_class.is_active.is_(True))
        if chain is not None:
            query = query.filter(self.model_class.chain == chain)
        return self._to_schemas(query.order_by(self.model_class.id).all())
