#!/usr/bin/env python3
"""
자동 복리 배치 실행 스크립트 (cron 용, 1시간 주기 권장)

주기가 지나지 않은 포지션은 건너뛰고, 같은 기준 시각으로는 한 번만 복리가 반영됩니다.

Usage:
    python scripts/run_auto_compound.py
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pointsapi.config import settings
from pointsapi.database.session import get_db_context
from pointsapi.logging_config import setup_logging
from pointsapi.services.auto_compound_service import AutoCompoundService


def main():
    setup_logging(settings.LOG_LEVEL)

    with get_db_context() as db:
        result = AutoCompoundService(db=db).run()

        print("=" * 70)
        print(f"🔁 Auto-compound at {result.ran_at.isoformat()}")
        print(f"  📈 Auto-compound positions: {result.total_positions}")
        print(f"  ✅ Compounded: {result.compounded}")
        print(f"  ⏳ Not due: {result.not_due}")
        print(f"  ❌ Failed: {result.failed}")
        print(f"  🏆 Points awarded: {result.points_awarded}")
        print("=" * 70)

        for outcome in result.results:
            if not outcome.success:
                print(f"  ✗ position {outcome.position_id}: {outcome.error}")

    if result.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
