"""
보유 포인트 배치 서비스

활성 EVM 계정마다 온체인 보유량을 읽어 사유별로 한 번씩 적립합니다.

    points = 보유 토큰 수량 * 사유별 배수 (holding 1x, lp_dex 2x, lending_collateral 3x)

적립 키는 holding:<address>:<사유>:<tick> 이며 tick 은 HOLDING_POINTS_INTERVAL_MINUTES
단위로 내림한 실행 시각입니다. 같은 구간에 배치가 다시 실행되어도 추가 적립은 없습니다.
한 계정의 적립은 함께 커밋되고, 한 계정의 실패는 다음 계정 처리를 막지 않습니다.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.models.account import ChainEnum
from pointsapi.models.points import ACTIVITY_MULTIPLIERS
from pointsapi.repositories.account_repository import AccountRepository
from pointsapi.schemas.points import HoldingPointsRunResult
from pointsapi.services.holdings_reader_service import HoldingsReaderService
from pointsapi.services.point_service import PointService
from pointsapi.utils.timezone_utils import ensure_utc, utc_now
import logging

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def tick_for(now: datetime, interval_minutes: int) -> str:
    """now 를 interval 단위로 내림한 구간 식별자 (예: 20250101T0300Z)"""
    interval = timedelta(minutes=max(1, interval_minutes))
    now = ensure_utc(now)
    start = EPOCH + ((now - EPOCH) // interval) * interval
    return start.strftime("%Y%m%dT%H%MZ")


class HoldingPointsService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        reader: Optional[HoldingsReaderService] = None,
    ):
        self.db = db
        self.settings = settings
        self.reader = reader
        self.account_repo = AccountRepository(db)
        self.point_service = PointService(db)

    def run(self, now: Optional[datetime] = None) -> HoldingPointsRunResult:
        now = ensure_utc(now) if now else utc_now()
        tick = tick_for(now, self.settings.HOLDING_POINTS_INTERVAL_MINUTES)
        if self.reader is None:
            self.reader = HoldingsReaderService(self.settings)

        accounts = self.account_repo.list_active()
        logger.info(f"Starting holding points for {len(accounts)} accounts (tick {tick})")
        result = HoldingPointsRunResult(ran_at=now, tick=tick, total_users=len(accounts))

        for account in accounts:
            if account.chain != ChainEnum.EVM.value:
                result.skipped += 1
                continue

            try:
                created, awarded = self.credit_holdings(account.address, tick)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                result.errored += 1
                logger.error(f"Failed to credit holding points for {account.address}: {str(e)}")
                continue

            result.processed += 1
            result.entries_created += created
            result.points_awarded += awarded
            logger.debug(f"Processed {account.address}: {awarded} points")

        logger.info(
            f"Holding points complete: {result.processed} processed, "
            f"{result.errored} errored, {result.skipped} skipped"
        )
        return result

    def credit_holdings(self, address: str, tick: str) -> Tuple[int, Decimal]:
        """
        계정 1건의 사유별 적립 (커밋은 호출자)

        Returns:
            (새로 만든 원장 항목 수, 적립 포인트 합계)
        """
        balances = self.reader.read(address)
        created = 0
        awarded = Decimal("0")

        for activity, amount in balances.items():
            if amount <= 0:
                continue
            key = f"holding:{address}:{activity.value}:{tick}"
            if self.point_service.points_repo.find_by_key(key):
                continue
            entry = self.point_service.credit(
                address=address,
                points=amount,
                multiplier=ACTIVITY_MULTIPLIERS[activity],
                activity_type=activity,
                idempotency_key=key,
                description=f"{activity.value} balance {amount} at {tick}",
                commit=False,
            )
            created += 1
            awarded += entry.points

        return created, awarded
