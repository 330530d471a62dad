"""
포인트 리포지토리 - 원장(points_history)과 잔액 프로젝션(points_balances) 접근

이 파일은 포인트 적립의 저장 계층을 담당합니다:
1. 원장 항목 추가 (append-only, 수정/삭제 메서드 없음)
2. idempotency_key 를 통한 중복 적립 방지
3. 잔액의 원자적 증가 (SQL 내부 연산)
4. 원장 기준 잔액 재구성 및 정합성 검증

핵심 특징:
- 잔액은 읽고-계산하고-쓰는 방식이 아니라 total_points + :delta 로 증가합니다
- 잔액 행이 없으면 INSERT ... ON CONFLICT DO UPDATE 로 한 번에 생성/증가합니다
- 원장 합계와 잔액은 항상 일치해야 하며 불일치 시 원장에서 재구성합니다
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from pointsapi.models.account import normalize_address
from pointsapi.models.points import PointsBalance, PointsHistory
from pointsapi.repositories.base import BaseRepository, dialect_insert
from pointsapi.schemas.points import PointsHistoryEntry, PointsIntegrityCheckResponse
from pointsapi.utils.timezone_utils import utc_now


def _verified_at() -> str:
    return utc_now().strftime("%Y-%m-%d %H:%M:%S")


class PointsRepository(BaseRepository[PointsHistory, PointsHistoryEntry]):
    """
    포인트 리포지토리 - 포인트 관련 모든 데이터베이스 작업 처리

    트랜잭션 경계는 서비스 계층이 결정합니다. 이 클래스의 쓰기 메서드는
    flush 까지만 수행하므로 입금 기록 등 다른 쓰기와 한 트랜잭션으로 묶입니다.
    """

    def __init__(self, db: Session):
        super().__init__(PointsHistory, PointsHistoryEntry, db)

    def find_by_key(self, idempotency_key: str) -> Optional[PointsHistoryEntry]:
        """idempotency_key 로 기존 원장 항목 조회 (멱등성 체크용)"""
        instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.idempotency_key == idempotency_key)
            .first()
        )
        return self._to_schema(instance)

    def append_entry(
        self,
        address: str,
        points: Decimal,
        multiplier: Decimal,
        activity_type: str,
        idempotency_key: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PointsHistoryEntry:
        """
        원장에 항목을 추가합니다 (flush 만 수행)

        idempotency_key 가 이미 존재하면 flush 시점에 IntegrityError 가 발생하며,
        처리는 호출자(PointService)가 담당합니다.
        """
        entry = self.model_class(
            address=normalize_address(address),
            points=points,
            multiplier=multiplier,
            activity_type=activity_type,
            idempotency_key=idempotency_key,
            description=description,
        )
        self.db.add(entry)
        self.db.flush()
        self.db.refresh(entry)
        return self._to_schema(entry)

    def increment_balance(
        self, address: str, delta: Decimal, updated_at: Optional[datetime] = None
    ) -> None:
        """
        잔액을 원자적으로 증가시킵니다.

        UPDATE points_balances SET total_points = total_points + :delta 와 같은
        의미이며, 행이 없을 때의 INSERT 와 동시 INSERT 경합도 DB 가 처리합니다.
        """
        table = PointsBalance.__table__
        updated_at = updated_at or utc_now()
        stmt = dialect_insert(self.db, table).values(
            address=normalize_address(address),
            total_points=delta,
            last_updated=updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.address],
            set_={
                "total_points": table.c.total_points + stmt.excluded.total_points,
                "last_updated": stmt.excluded.last_updated,
                # ON CONFLICT 경로에는 컬럼 onupdate 가 적용되지 않음
                "updated_at": stmt.excluded.last_updated,
            },
        )
        self.db.execute(stmt)

    def get_balance(self, address: str) -> Decimal:
        """현재 누적 포인트 (기록 없으면 0)"""
        total = (
            self.db.query(PointsBalance.total_points)
            .filter(PointsBalance.address == normalize_address(address))
            .scalar()
        )
        return Decimal(total) if total is not None else Decimal("0")

    def sum_history(self, address: str) -> Decimal:
        """원장 기준 포인트 합계"""
        total = (
            self.db.query(func.sum(self.model_class.points))
            .filter(self.model_class.address == normalize_address(address))
            .scalar()
        )
        return Decimal(total) if total is not None else Decimal("0")

    def get_history(self, address: str, limit: int = 30) -> List[PointsHistoryEntry]:
        """최신순 원장 조회 (created_at DESC, id DESC)"""
        entries = (
            self.db.query(self.model_class)
            .filter(self.model_class.address == normalize_address(address))
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(entries)

    def rebuild_balance(self, address: str) -> Decimal:
        """
        원장에서 잔액을 다시 계산해 덮어씁니다 (flush 만 수행)

        points_balances 는 원장의 프로젝션이므로 불일치가 감지되면
        이 메서드로 복구할 수 있습니다.
        """
        normalized = normalize_address(address)
        total = self.sum_history(normalized)
        table = PointsBalance.__table__
        stmt = dialect_insert(self.db, table).values(
            address=normalized, total_points=total, last_updated=utc_now()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.address],
            set_={
                "total_points": stmt.excluded.total_points,
                "last_updated": stmt.excluded.last_updated,
                "updated_at": stmt.excluded.last_updated,
            },
        )
        self.db.execute(stmt)
        return total

    def verify_integrity_for_user(self, address: str) -> PointsIntegrityCheckResponse:
        """
        특정 주소의 포인트 정합성 검증

        검증 방식:
        1. 원장의 points 합계 계산
        2. points_balances.total_points 와 비교
        3. 일치하지 않으면 MISMATCH
        """
        normalized = normalize_address(address)
        entry_count = (
            self.db.query(func.count(self.model_class.id))
            .filter(self.model_class.address == normalized)
            .scalar()
        ) or 0
        calculated = self.sum_history(normalized)
        recorded = self.get_balance(normalized)

        return PointsIntegrityCheckResponse(
            status="OK" if calculated == recorded else "MISMATCH",
            address=normalized,
            calculated_balance=calculated,
            recorded_balance=recorded,
            entry_count=entry_count,
            verified_at=_verified_at(),
        )

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        """
        전체 시스템의 포인트 정합성 검증

        검증 방식:
        1. 주소별 원장 합계와 잔액을 비교해 불일치 주소 수집
        2. 전체 원장 합계와 전체 잔액 합계 비교

        대량 데이터에서는 시간이 걸리므로 관리자 API / 배치에서만 호출합니다.
        """
        history_sums: Dict[str, Decimal] = {
            address: Decimal(total or 0)
            for address, total in self.db.query(
                self.model_class.address, func.sum(self.model_class.points)
            )
            .group_by(self.model_class.address)
            .all()
        }
        balances: Dict[str, Decimal] = {
            address: Decimal(total or 0)
            for address, total in self.db.query(
                PointsBalance.address, PointsBalance.total_points
            ).all()
        }

        mismatched = sorted(
            address
            for address in set(history_sums) | set(balances)
            if history_sums.get(address, Decimal("0"))
            != balances.get(address, Decimal("0"))
        )
        total_history = sum(history_sums.values(), Decimal("0"))
        total_balance = sum(balances.values(), Decimal("0"))
        entry_count = self.db.query(func.count(self.model_class.id)).scalar() or 0

        return PointsIntegrityCheckResponse(
            status="OK" if not mismatched and total_history == total_balance else "MISMATCH",
            total_history_points=total_history,
            total_balance_points=total_balance,
            mismatched_addresses=mismatched,
            entry_count=entry_count,
            verified_at=_verified_at(),
        )
