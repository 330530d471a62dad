"""Daily-compounded yield helpers."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pointsapi.utils.timezone_utils import ensure_utc

SECONDS_PER_DAY = Decimal(86400)
DAYS_PER_YEAR = Decimal(365)


def days_held(created_at: Optional[datetime], now: datetime) -> Decimal:
    """Fractional days between creation and now, never negative."""
    if created_at is None:
        return Decimal("0")
    elapsed = (ensure_utc(now) - ensure_utc(created_at)).total_seconds()
    return max(Decimal("0"), Decimal(str(elapsed)) / SECONDS_PER_DAY)


def daily_rate(base_apy_bps: int) -> Decimal:
    """1250 bps -> 0.125 / 365"""
    return Decimal(base_apy_bps) / Decimal(100) / Decimal(100) / DAYS_PER_YEAR


def compound_value(amount: Decimal, base_apy_bps: int, days: Decimal) -> Decimal:
    """amount * (1 + daily_rate) ** days"""
    if days <= 0:
        return Decimal(amount)
    return Decimal(amount) * (Decimal(1) + daily_rate(base_apy_bps)) ** Decimal(days)
