"""
자동 복리 배치 서비스

auto_compound 가 켜진 활성 포지션 중 주기(daily 1일 / weekly 7일 / monthly 30일)가
지난 포지션에 대해

    yield = current_value * daily_rate * 경과일수

를 current_value 에 더하고, yield * strategy.points_multiplier 포인트를
compound:<position_id>:<기준 시각> 키로 적립합니다. 같은 기준 시각으로는 한 번만
적립되므로 배치가 겹쳐 실행되어도 이중 복리가 일어나지 않습니다.
포지션 갱신, 원장 적립, 활동 로그는 포지션 단위로 커밋되며 한 포지션의 실패는
나머지를 막지 않습니다.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from pointsapi.models.points import ActivityType
from pointsapi.repositories.activity_repository import ActivityRepository
from pointsapi.repositories.position_repository import CompoundTarget, PositionRepository
from pointsapi.schemas.position import AutoCompoundRunResult, CompoundOutcome
from pointsapi.services.point_service import PointService
from pointsapi.utils.timezone_utils import ensure_utc, utc_now
from pointsapi.utils.yield_math import daily_rate, days_held
import logging

logger = logging.getLogger(__name__)


def compound_key(target: CompoundTarget) -> str:
    return f"compound:{target.id}:{ensure_utc(target.anchor).isoformat()}"


class AutoCompoundService:
    def __init__(self, db: Session):
        self.db = db
        self.position_repo = PositionRepository(db)
        self.activity_repo = ActivityRepository(db)
        self.point_service = PointService(db)

    def is_due(self, target: CompoundTarget, now: datetime) -> bool:
        if target.anchor is None:
            return False
        cutoff = now - timedelta(days=target.compound_frequency.period_days)
        return ensure_utc(target.anchor) < cutoff

    def run(self, now: Optional[datetime] = None) -> AutoCompoundRunResult:
        now = ensure_utc(now) if now else utc_now()
        targets = self.position_repo.list_auto_compound_targets()
        logger.info(f"Starting auto-compound for {len(targets)} positions")

        result = AutoCompoundRunResult(ran_at=now, total_positions=len(targets))
        for target in targets:
            if not self.is_due(target, now):
                result.not_due += 1
                logger.debug(f"Position {target.id} not due for compounding yet")
                continue

            try:
                outcome = self.compound(target, now)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                result.failed += 1
                result.results.append(
                    CompoundOutcome(position_id=target.id, success=False, error=str(e))
                )
                logger.error(f"Failed to compound position {target.id}: {str(e)}")
                continue

            if outcome is None:
                result.not_due += 1
                continue
            result.compounded += 1
            result.points_awarded += outcome.points_earned or Decimal("0")
            result.results.append(outcome)

        logger.info(
            f"Auto-compound completed: {result.compounded} compounded, "
            f"{result.not_due} not due, {result.failed} failed"
        )
        return result

    def compound(self, target: CompoundTarget, now: datetime) -> Optional[CompoundOutcome]:
        """
        포지션 1건 복리 반영 (커밋은 호출자)

        Returns:
            CompoundOutcome, 이미 같은 기준 시각으로 복리가 반영되었으면 None
        """
        key = compound_key(target)
        if self.point_service.points_repo.find_by_key(key):
            logger.info(f"Position {target.id} already compounded for {key}")
            return None

        days = days_held(target.anchor, now)
        yield_earned = Decimal(target.current_value) * daily_rate(target.base_apy_bps) * days
        new_value = Decimal(target.current_value) + yield_earned
        points_earned = Decimal("0")

        if yield_earned > 0:
            entry = self.point_service.credit(
                address=target.address,
                points=yield_earned,
                multiplier=target.points_multiplier,
                activity_type=ActivityType.AUTO_COMPOUND,
                idempotency_key=key,
                description="Auto-compound yield from vault",
                commit=False,
            )
            points_earned = entry.points

        if not self.position_repo.apply_compound(target.id, new_value, points_earned, now):
            raise RuntimeError(f"Position {target.id} is no longer active")

        self.activity_repo.log(
            user_id=target.user_id,
            activity_type="auto_compound",
            description=f"Auto-compounded vault position: +{yield_earned:.2f}",
            meta={
                "position_id": target.id,
                "yield_earned": str(yield_earned),
                "points_earned": str(points_earned),
                "new_value": str(new_value),
            },
        )
        logger.info(
            f"Compounded position {target.id}: +{yield_earned:.6f} yield, {points_earned} points"
        )
        return CompoundOutcome(
            position_id=target.id,
            success=True,
            yield_earned=yield_earned,
            points_earned=points_earned,
            new_value=new_value,
        )
