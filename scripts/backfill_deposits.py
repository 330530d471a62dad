#!/usr/bin/env python3
"""
Vault Deposit 이벤트 백필 스크립트

최근 블록 구간의 Deposit 로그를 스캔해 누락된 입금을 적립합니다.
이미 처리된 tx_hash 는 건너뛰므로 여러 번 실행해도 안전합니다.

Usage:
    python scripts/backfill_deposits.py [--from-block N] [--to-block M]
"""

import argparse
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pointsapi.config import settings
from pointsapi.database.connection import SessionLocal
from pointsapi.logging_config import setup_logging
from pointsapi.services.deposit_service import DepositService
from pointsapi.services.log_scanner_service import LogScannerService


def main():
    parser = argparse.ArgumentParser(description="Backfill vault deposit events")
    parser.add_argument("--from-block", type=int, default=None)
    parser.add_argument("--to-block", type=int, default=None)
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)

    print("=" * 70)
    print("🚀 Starting deposit backfill...")
    print(f"   RPC: {settings.RPC_URL}")
    print(f"   Vault: {settings.VAULT_ADDRESS}")
    print("=" * 70)

    db = SessionLocal()
    try:
        service = DepositService(
            db=db, settings=settings, scanner=LogScannerService(settings)
        )
        result = service.backfill_range(
            from_block=args.from_block, to_block=args.to_block
        )

        print("\n" + "=" * 70)
        print("📊 Backfill Summary:")
        print(f"  📈 Events found: {result.total_events}")
        print(f"  ✅ Succeeded: {result.succeeded}")
        print(f"  ⊘  Skipped: {result.skipped}")
        print(f"  ❌ Errors: {result.errored}")
        print(f"  🏆 Points awarded: {result.points_awarded}")
        print("=" * 70)

        for error in result.errors:
            print(f"  ✗ {error.tx_hash}: {error.error}")

        if result.errored:
            sys.exit(1)

    finally:
        db.close()


if __name__ == "__main__":
    main()
