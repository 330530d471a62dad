"""
수익 갱신 배치 서비스

활성 포지션마다 current_value = amount * (1 + apy/365) ** days_held * noise 를 계산해
개별 커밋합니다. 한 포지션의 실패는 로그만 남기고 다음 포지션으로 넘어가며,
마지막에 전략별 TVL 을 활성 포지션 current_value 합계로 다시 씁니다.

동시 실행 방지는 호출자(cron / 배치 트리거)의 책임입니다.
"""

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.repositories.position_repository import PositionRepository
from pointsapi.repositories.strategy_repository import StrategyRepository
from pointsapi.schemas.position import AccrualRunResult
from pointsapi.utils.timezone_utils import ensure_utc, utc_now
from pointsapi.utils.yield_math import compound_value, days_held
import logging

logger = logging.getLogger(__name__)


class YieldService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        noise: Optional[Callable[[], float]] = None,
    ):
        self.db = db
        self.settings = settings
        self.noise = noise or self._default_noise
        self.position_repo = PositionRepository(db)
        self.strategy_repo = StrategyRepository(db)

    def _default_noise(self) -> float:
        if not self.settings.YIELD_NOISE_ENABLED:
            return 1.0
        return random.uniform(self.settings.YIELD_NOISE_MIN, self.settings.YIELD_NOISE_MAX)

    def calculate_value(
        self, amount: Decimal, base_apy_bps: int, created_at: Optional[datetime], now: datetime
    ) -> Decimal:
        """복리 가치 * noise, 0 미만이면 0"""
        value = compound_value(amount, base_apy_bps, days_held(created_at, now))
        value *= Decimal(str(self.noise()))
        return max(value, Decimal("0"))

    def run_accrual(self, now: Optional[datetime] = None) -> AccrualRunResult:
        """모든 활성 포지션 current_value 갱신 후 TVL 재계산"""
        now = ensure_utc(now) if now else utc_now()
        targets = self.position_repo.list_active_for_accrual()
        logger.info(f"Starting yield accrual for {len(targets)} active positions")

        updated = 0
        failed = 0
        for target in targets:
            try:
                value = self.calculate_value(
                    target.amount, target.base_apy_bps, target.created_at, now
                )
                if self.position_repo.update_current_value(target.id, value):
                    updated += 1
                    logger.debug(f"Position {target.id}: {target.amount} -> {value:.4f}")
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                failed += 1
                logger.error(f"Failed to update position {target.id}: {str(e)}")

        strategies_updated = self.recompute_tvl()

        logger.info(
            f"Yield accrual completed: {updated} updated, {failed} failed, "
            f"{strategies_updated} strategies"
        )
        return AccrualRunResult(
            ran_at=now,
            next_run_at=now + timedelta(minutes=self.settings.YIELD_ACCRUAL_INTERVAL_MINUTES),
            total_positions=len(targets),
            updated=updated,
            failed=failed,
            strategies_updated=strategies_updated,
        )

    def recompute_tvl(self) -> int:
        """전략별 TVL = 활성 포지션 current_value 합계 (없으면 0)"""
        try:
            totals = self.position_repo.sum_active_values_by_strategy()
            strategy_ids = self.strategy_repo.list_ids()
            for strategy_id in strategy_ids:
                self.strategy_repo.set_tvl(strategy_id, totals.get(strategy_id, Decimal("0")))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to recompute strategy TVL: {str(e)}")
            return 0
        return len(strategy_ids)
