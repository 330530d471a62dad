"""
기본 전략 데이터 시드 스크립트
DeFi 전략(APY, 포인트 배수)을 초기 데이터로 설정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decimal import Decimal
from pointsapi.database.connection import SessionLocal
from pointsapi.models.strategy import Strategy


def seed_strategies():
    """기본 전략 시드 (이름이 같은 전략은 건너뜀)"""

    # (이름, 프로토콜 유형, APY bps, 포인트 배수)
    default_strategies = [
        ("nbkUSDC Holding Vault", "holding", 800, Decimal("1")),
        ("ETH/USDC DEX LP", "lp_dex", 1250, Decimal("2")),
        ("USDC Lending Collateral", "lending", 520, Decimal("3")),
    ]

    db = SessionLocal()
    try:
        created = 0
        for name, protocol_type, apy_bps, multiplier in default_strategies:
            exists = db.query(Strategy).filter(Strategy.name == name).first()
            if exists:
                print(f"ℹ️  {name}: 이미 존재")
                continue
            db.add(
                Strategy(
                    name=name,
                    protocol_type=protocol_type,
                    chain="base",
                    base_apy_bps=apy_bps,
                    points_multiplier=multiplier,
                    tvl=Decimal("0"),
                    is_active=True,
                )
            )
            created += 1

        db.commit()
        print(f"✅ 전략 시드 데이터 생성 완료: {created}개")
        print("📊 전략 목록:")
        for name, protocol_type, apy_bps, multiplier in default_strategies:
            print(f"   - {name} ({protocol_type}) {apy_bps / 100:.2f}% APY, {multiplier}x")

    except Exception as e:
        db.rollback()
        print(f"❌ 전략 시드 데이터 생성 실패: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_strategies()
