#!/usr/bin/env python3
"""
보유 포인트 배치 실행 스크립트 (cron 용)

HOLDING_POINTS_INTERVAL_MINUTES 주기로 실행합니다. 같은 구간에서 다시 실행해도
추가 적립은 없습니다.

Usage:
    python scripts/run_holding_points.py
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pointsapi.config import settings
from pointsapi.database.session import get_db_context
from pointsapi.logging_config import setup_logging
from pointsapi.services.holding_points_service import HoldingPointsService


def main():
    setup_logging(settings.LOG_LEVEL)

    with get_db_context() as db:
        result = HoldingPointsService(db=db, settings=settings).run()

        print("=" * 70)
        print(f"💎 Holding points for tick {result.tick}")
        print(f"  👥 Accounts: {result.total_users}")
        print(f"  ✅ Processed: {result.processed}")
        print(f"  ⊘  Skipped (no EVM balance source): {result.skipped}")
        print(f"  ❌ Errors: {result.errored}")
        print(f"  🧾 Ledger entries: {result.entries_created}")
        print(f"  🏆 Points awarded: {result.points_awarded}")
        print("=" * 70)

    if result.errored:
        sys.exit(1)


if __name__ == "__main__":
    main()
