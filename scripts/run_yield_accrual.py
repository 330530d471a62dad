#!/usr/bin/env python3
"""
수익 갱신 배치 실행 스크립트 (cron 용)

동시 실행 방지는 호출 측(cron, 단일 스케줄러)의 책임입니다.

Usage:
    python scripts/run_yield_accrual.py
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pointsapi.config import settings
from pointsapi.database.session import get_db_context
from pointsapi.logging_config import setup_logging
from pointsapi.services.yield_service import YieldService


def main():
    setup_logging(settings.LOG_LEVEL)

    with get_db_context() as db:
        result = YieldService(db=db, settings=settings).run_accrual()

        print("=" * 70)
        print(f"📊 Yield accrual at {result.ran_at.isoformat()}")
        print(f"  📈 Active positions: {result.total_positions}")
        print(f"  ✅ Updated: {result.updated}")
        print(f"  ❌ Failed: {result.failed}")
        print(f"  🏦 Strategies TVL updated: {result.strategies_updated}")
        print("=" * 70)

    if result.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
