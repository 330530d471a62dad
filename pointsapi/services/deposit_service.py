"""
입금 이벤트 수집 서비스

동일한 이벤트가 재시도/재전송되어도 tx_hash 당 정확히 한 번만 포인트가 적립됩니다.
1. 이미 알려진 tx_hash -> credited=False 로 건너뜀 (에러 아님)
2. 새 tx_hash -> 계정 생성, 입금 기록, 원장 적립을 하나의 트랜잭션으로 커밋
3. 동시에 같은 tx_hash 가 들어와 유니크 인덱스에 걸리면 1과 동일하게 처리
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

import base58
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from web3 import Web3

from pointsapi.config import Settings
from pointsapi.core.exceptions import (
    InvalidEventError,
    NotFoundError,
    StoreUnavailableError,
)
from pointsapi.models.account import detect_chain, normalize_address
from pointsapi.models.points import ActivityType
from pointsapi.repositories.account_repository import AccountRepository
from pointsapi.repositories.deposit_repository import DepositRepository
from pointsapi.schemas.deposit import (
    BackfillError,
    BackfillResult,
    DepositEvent,
    DepositResponse,
    IngestResult,
)
from pointsapi.services.log_scanner_service import LogScannerService
from pointsapi.services.point_service import PointService, quantize_multiplier
from pointsapi.utils.timezone_utils import from_unix_seconds
import logging

logger = logging.getLogger(__name__)


def _is_valid_address(address: str) -> bool:
    if address.lower().startswith("0x"):
        return Web3.is_address(address)
    try:
        return len(base58.b58decode(address)) == 32
    except ValueError:
        return False


def _normalize_tx_hash(tx_hash: str) -> str:
    # EVM 해시는 hex 라 대소문자 무시, Solana 서명(base58)은 그대로 유지
    tx_hash = tx_hash.strip()
    return tx_hash.lower() if tx_hash.lower().startswith("0x") else tx_hash


class DepositService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        scanner: Optional[LogScannerService] = None,
    ):
        self.db = db
        self.settings = settings
        self.scanner = scanner
        self.deposit_repo = DepositRepository(db)
        self.account_repo = AccountRepository(db)
        self.point_service = PointService(db)

    def validate_event(self, event: DepositEvent) -> Tuple[str, Decimal, str]:
        """
        이벤트 필드 검증

        Returns:
            (address, amount, tx_hash) 정규화된 값

        Raises:
            InvalidEventError: 주소 누락/형식 오류, 0 이하 금액 또는 배수, 빈 tx_hash
        """
        address = (event.address or "").strip()
        if not address or not _is_valid_address(address):
            raise InvalidEventError(
                "Invalid or missing address", details={"address": event.address}
            )

        amount = event.amount
        if amount is None or not amount.is_finite() or amount <= 0:
            raise InvalidEventError(
                "Deposit amount must be positive",
                details={"amount": None if amount is None else str(amount)},
            )

        tx_hash = _normalize_tx_hash(event.tx_hash or "")
        if not tx_hash:
            raise InvalidEventError("Transaction hash is required")

        if event.multiplier is not None and (
            not event.multiplier.is_finite() or quantize_multiplier(event.multiplier) <= 0
        ):
            raise InvalidEventError(
                "Points multiplier must be positive",
                details={"multiplier": str(event.multiplier)},
            )

        if event.timestamp_seconds is not None and event.timestamp_seconds < 0:
            raise InvalidEventError(
                "Invalid event timestamp",
                details={"timestamp_seconds": event.timestamp_seconds},
            )

        return normalize_address(address), amount, tx_hash

    def calculate_points(self, amount: Decimal) -> Decimal:
        """배수 적용 전 포인트 = amount * DEPOSIT_BASE_POINTS_RATE"""
        return amount * Decimal(str(self.settings.DEPOSIT_BASE_POINTS_RATE))

    def ingest(self, event: DepositEvent) -> IngestResult:
        """입금 이벤트 1건 처리 (멱등)"""
        address, amount, tx_hash = self.validate_event(event)

        try:
            if self.deposit_repo.get_by_tx_hash(tx_hash):
                return self._skipped(tx_hash)

            multiplier = quantize_multiplier(
                event.multiplier
                if event.multiplier is not None
                else Decimal(str(self.settings.DEPOSIT_POINTS_MULTIPLIER))
            )
            base_points = self.calculate_points(amount)
            points_awarded = base_points * multiplier
            event_timestamp = (
                from_unix_seconds(event.timestamp_seconds)
                if event.timestamp_seconds is not None
                else None
            )

            self.account_repo.get_or_create(address, chain=detect_chain(address))
            self.deposit_repo.add_deposit(
                tx_hash=tx_hash,
                address=address,
                amount=amount,
                chain=self.settings.DEPOSIT_CHAIN,
                points_awarded=points_awarded,
                block_number=event.block_number,
                event_timestamp=event_timestamp,
            )
            self.point_service.credit(
                address=address,
                points=base_points,
                multiplier=multiplier,
                activity_type=ActivityType.DEPOSIT,
                idempotency_key=f"deposit:{tx_hash}",
                description=f"Vault deposit of {amount} ({tx_hash})",
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self.deposit_repo.get_by_tx_hash(tx_hash):
                logger.info(f"Deposit {tx_hash} was ingested concurrently, skipping")
                return self._skipped(tx_hash)
            raise
        except OperationalError as e:
            self.db.rollback()
            logger.error(f"Store unavailable while ingesting {tx_hash}: {str(e)}")
            raise StoreUnavailableError(details={"tx_hash": tx_hash})
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Ingested deposit {tx_hash}: {amount} from {address}, {points_awarded} points"
        )
        return IngestResult(
            tx_hash=tx_hash,
            credited=True,
            points_awarded=points_awarded,
            message="Deposit credited",
        )

    def _skipped(self, tx_hash: str) -> IngestResult:
        logger.info(f"Deposit {tx_hash} already processed, skipping")
        return IngestResult(
            tx_hash=tx_hash,
            credited=False,
            points_awarded=Decimal("0"),
            message="Deposit already processed",
        )

    def backfill(self, events: Iterable[DepositEvent]) -> BackfillResult:
        """
        과거 이벤트 일괄 처리

        (block_number, log_index) 순서로 처리하며 한 건의 실패가 나머지를 막지 않습니다.
        """
        ordered: List[DepositEvent] = sorted(
            events, key=lambda e: (e.block_number or 0, e.log_index or 0)
        )
        result = BackfillResult(total_events=len(ordered))

        for event in ordered:
            try:
                ingest_result = self.ingest(event)
            except Exception as e:
                result.errored += 1
                result.errors.append(BackfillError(tx_hash=event.tx_hash, error=str(e)))
                logger.warning(f"Backfill failed for {event.tx_hash}: {str(e)}")
                continue

            if ingest_result.credited:
                result.succeeded += 1
                result.points_awarded += ingest_result.points_awarded
            else:
                result.skipped += 1

        logger.info(
            f"Backfill complete: {result.succeeded} succeeded, "
            f"{result.skipped} skipped, {result.errored} errored"
        )
        return result

    def backfill_range(
        self, from_block: Optional[int] = None, to_block: Optional[int] = None
    ) -> BackfillResult:
        """체인 로그를 스캔해 backfill 수행"""
        if self.scanner is None:
            self.scanner = LogScannerService(self.settings)
        events = self.scanner.scan(from_block=from_block, to_block=to_block)
        return self.backfill(events)

    def confirm(self, tx_hash: str) -> DepositResponse:
        """pending -> confirmed. 이미 confirmed 면 그대로 반환"""
        tx_hash = _normalize_tx_hash(tx_hash)
        try:
            updated = self.deposit_repo.confirm(tx_hash)
            self.db.commit()
        except OperationalError as e:
            self.db.rollback()
            logger.error(f"Store unavailable while confirming {tx_hash}: {str(e)}")
            raise StoreUnavailableError(details={"tx_hash": tx_hash})

        deposit = self.deposit_repo.get_by_tx_hash(tx_hash)
        if deposit is None:
            raise NotFoundError(f"Deposit not found: {tx_hash}")
        if updated:
            logger.info(f"Deposit {tx_hash} confirmed")
        return deposit

    def list_deposits(self, address: str, limit: int = 50) -> List[DepositResponse]:
        return self.deposit_repo.list_by_address(address, limit=limit)
