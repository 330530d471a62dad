from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from pointsapi.core.exceptions import (
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from pointsapi.models.account import detect_chain
from pointsapi.models.points import MULTIPLIER_QUANTUM, ActivityType
from pointsapi.repositories.account_repository import AccountRepository
from pointsapi.repositories.points_repository import PointsRepository
from pointsapi.schemas.points import (
    AdminCreditRequest,
    PointsHistoryEntry,
    PointsIntegrityCheckResponse,
)
import logging

logger = logging.getLogger(__name__)


def _to_decimal(value: Union[Decimal, int, float, str], field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value}")
    if not result.is_finite():
        raise ValidationError(f"Invalid {field}: {value}")
    return result


def quantize_multiplier(value: Union[Decimal, int, float, str]) -> Decimal:
    """원장 multiplier 컬럼 정밀도(소수 4자리)로 반올림. points / multiplier = 기본 포인트 유지"""
    try:
        return _to_decimal(value, "multiplier").quantize(
            MULTIPLIER_QUANTUM, rounding=ROUND_HALF_UP
        )
    except InvalidOperation:
        raise ValidationError(f"Multiplier out of range: {value}")


class PointService:
    """
    포인트 원장 서비스 - points_balances 의 유일한 작성자

    모든 적립은 원장 항목 추가와 잔액 증가가 같은 트랜잭션에서 일어납니다.
    commit=False 로 호출하면 호출자(입금 수집, 포지션 개설)의 트랜잭션에
    포함되어 함께 커밋/롤백됩니다.
    """

    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.account_repo = AccountRepository(db)

    def credit(
        self,
        address: str,
        points: Union[Decimal, int, float, str],
        multiplier: Union[Decimal, int, float, str] = Decimal("1"),
        activity_type: Union[ActivityType, str] = ActivityType.DEPOSIT,
        idempotency_key: Optional[str] = None,
        description: Optional[str] = None,
        commit: bool = True,
    ) -> PointsHistoryEntry:
        """포인트 적립

        Args:
            address: 지갑 주소 (대소문자 무시)
            points: 배수 적용 전 포인트
            multiplier: 적용 배수 (소수 4자리로 반올림)
            activity_type: 적립 사유
            idempotency_key: 중복 방지 키. 이미 사용된 키면 기존 항목을 그대로 반환
            description: 설명
            commit: False 이면 flush 까지만 수행하고 커밋은 호출자에게 맡김

        Returns:
            PointsHistoryEntry: 새로 추가되었거나 기존의 원장 항목

        Raises:
            ValidationError: 적립 포인트가 0 이하이거나 주소/사유가 잘못된 경우
            IntegrityError: commit=False 에서 동시 요청과 키가 충돌한 경우
        """
        if not address or not address.strip():
            raise ValidationError("Address is required")

        base_points = _to_decimal(points, "points")
        applied_multiplier = quantize_multiplier(multiplier)
        credited = base_points * applied_multiplier
        if credited <= 0:
            raise ValidationError(
                "Credited points must be positive",
                details={"points": str(base_points), "multiplier": str(applied_multiplier)},
            )

        try:
            activity = ActivityType(activity_type).value
        except ValueError:
            raise ValidationError(f"Unknown activity type: {activity_type}")

        if idempotency_key:
            existing = self.points_repo.find_by_key(idempotency_key)
            if existing:
                logger.info(
                    f"Skip credit for {address}: idempotency key {idempotency_key} already used"
                )
                return existing

        try:
            self.account_repo.get_or_create(address, chain=detect_chain(address))
            entry = self.points_repo.append_entry(
                address=address,
                points=credited,
                multiplier=applied_multiplier,
                activity_type=activity,
                idempotency_key=idempotency_key,
                description=description,
            )
            self.points_repo.increment_balance(address, credited)
            if commit:
                self.db.commit()
        except IntegrityError:
            if not commit:
                raise
            self.db.rollback()
            # 동시 요청이 같은 키로 먼저 커밋한 경우
            existing = (
                self.points_repo.find_by_key(idempotency_key) if idempotency_key else None
            )
            if existing:
                logger.info(f"Idempotency key {idempotency_key} won by a concurrent credit")
                return existing
            raise
        except OperationalError as e:
            if not commit:
                raise
            self.db.rollback()
            logger.error(f"Store unavailable while crediting {address}: {str(e)}")
            raise StoreUnavailableError(details={"address": address})

        logger.info(
            f"Credited {credited} points to {address} ({activity}, x{applied_multiplier})"
        )
        return entry

    def admin_credit(self, request: AdminCreditRequest) -> PointsHistoryEntry:
        """관리자 지급 - multiplier 미지정 시 활동 유형의 기본 배수 사용"""
        multiplier = request.multiplier or request.activity_type.default_multiplier
        return self.credit(
            address=request.address,
            points=request.points,
            multiplier=multiplier,
            activity_type=request.activity_type,
            idempotency_key=request.idempotency_key,
            description=request.description or "Admin credit",
        )

    def get_balance(self, address: str) -> Decimal:
        return self.points_repo.get_balance(address)

    def verify_user_integrity(self, address: str) -> PointsIntegrityCheckResponse:
        """주소별 원장 합계 = 잔액 검증"""
        result = self.points_repo.verify_integrity_for_user(address)
        if result.status != "OK":
            logger.warning(
                f"Points mismatch for {result.address}: "
                f"history={result.calculated_balance} balance={result.recorded_balance}"
            )
        return result

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        result = self.points_repo.verify_global_integrity()
        if result.status != "OK":
            logger.warning(
                f"Global points mismatch: {len(result.mismatched_addresses or [])} addresses"
            )
        return result

    def rebuild_balance(self, address: str) -> PointsIntegrityCheckResponse:
        """원장에서 잔액 프로젝션을 재구성한 뒤 검증 결과를 반환"""
        if self.account_repo.get_by_address(address) is None:
            raise NotFoundError(f"Account not found: {address}")

        try:
            total = self.points_repo.rebuild_balance(address)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to rebuild balance for {address}: {str(e)}")
            raise
        logger.info(f"Rebuilt balance for {address}: {total}")
        return self.points_repo.verify_integrity_for_user(address)
