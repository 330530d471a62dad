from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest

from pointsapi.models.position import Position, PositionStatusEnum
from pointsapi.models.strategy import Strategy
from pointsapi.services.yield_service import YieldService
from pointsapi.utils.yield_math import compound_value, days_held

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def make_position(db_session, make_account):
    account = make_account()

    def _make(
        strategy, amount="100", days_ago=365, status=PositionStatusEnum.ACTIVE, auto_compound=False
    ):
        position = Position(
            user_id=account.id,
            strategy_id=strategy.id,
            amount=Decimal(amount),
            current_value=Decimal(amount),
            points_earned=Decimal("0"),
            status=status,
            auto_compound=auto_compound,
            created_at=NOW - timedelta(days=days_ago),
        )
        db_session.add(position)
        db_session.commit()
        return position

    return _make


class TestYieldMath:
    def test_one_year_at_1250_bps(self):
        """100 @ 12.5% 일복리 365일 ~= 113.31"""
        value = compound_value(Decimal("100"), 1250, Decimal("365"))

        assert abs(value - Decimal("113.31")) < Decimal("0.01")

    def test_zero_days_keeps_principal(self):
        assert compound_value(Decimal("50"), 1250, Decimal("0")) == Decimal("50")

    def test_days_held_never_negative(self):
        future = NOW + timedelta(days=3)

        assert days_held(future, NOW) == Decimal("0")
        assert days_held(None, NOW) == Decimal("0")

    def test_days_held_accepts_naive_datetimes(self):
        created = datetime(2024, 12, 31, 12, 0, 0)

        assert days_held(created, NOW) == Decimal("0.5")


class TestYieldService:
    """수익 갱신 배치 테스트"""

    def test_accrual_compounds_active_positions(
        self, db_session, test_settings, make_strategy, make_position
    ):
        # Arrange
        strategy = make_strategy(base_apy_bps=1250)
        position = make_position(strategy, amount="100", days_ago=365)
        service = YieldService(db_session, settings=test_settings, noise=lambda: 1.0)

        # Act
        result = service.run_accrual(now=NOW)

        # Assert
        db_session.expire_all()
        refreshed = db_session.get(Position, position.id)
        assert result.total_positions == 1
        assert result.updated == 1
        assert result.failed == 0
        assert abs(refreshed.current_value - Decimal("113.31")) < Decimal("0.01")

    def test_result_reports_next_run_from_interval(self, db_session, test_settings):
        test_settings.YIELD_ACCRUAL_INTERVAL_MINUTES = 15
        service = YieldService(db_session, settings=test_settings, noise=lambda: 1.0)

        result = service.run_accrual(now=NOW)

        assert result.ran_at == NOW
        assert result.next_run_at == NOW + timedelta(minutes=15)

    def test_negative_value_is_clamped_at_zero(
        self, db_session, test_settings, make_strategy, make_position
    ):
        strategy = make_strategy()
        position = make_position(strategy, amount="10", days_ago=30)
        service = YieldService(db_session, settings=test_settings, noise=lambda: -1.0)

        service.run_accrual(now=NOW)

        db_session.expire_all()
        assert db_session.get(Position, position.id).current_value == Decimal("0")

    def test_noise_scales_value(self, db_session, test_settings, make_strategy, make_position):
        strategy = make_strategy()
        position = make_position(strategy, amount="100", days_ago=0)
        service = YieldService(db_session, settings=test_settings, noise=lambda: 1.02)

        service.run_accrual(now=NOW)

        db_session.expire_all()
        assert db_session.get(Position, position.id).current_value == Decimal("102")

    def test_default_noise_stays_in_band(self, db_session, test_settings):
        test_settings.YIELD_NOISE_ENABLED = True
        service = YieldService(db_session, settings=test_settings)

        samples = [service.noise() for _ in range(200)]

        assert all(0.98 <= s <= 1.02 for s in samples)

    def test_failure_does_not_stop_other_positions(
        self, db_session, test_settings, make_strategy, make_position
    ):
        """한 포지션 실패 시 나머지는 계속 갱신"""
        strategy = make_strategy()
        first = make_position(strategy, amount="100", days_ago=0)
        second = make_position(strategy, amount="200", days_ago=0)
        third = make_position(strategy, amount="300", days_ago=0)
        noise = Mock(side_effect=[1.01, RuntimeError("boom"), 1.01])
        service = YieldService(db_session, settings=test_settings, noise=noise)

        result = service.run_accrual(now=NOW)

        db_session.expire_all()
        assert result.updated == 2
        assert result.failed == 1
        assert db_session.get(Position, first.id).current_value == Decimal("101")
        assert db_session.get(Position, second.id).current_value == Decimal("200")
        assert db_session.get(Position, third.id).current_value == Decimal("303")

    def test_withdrawn_positions_are_untouched(
        self, db_session, test_settings, make_strategy, make_position
    ):
        strategy = make_strategy()
        withdrawn = make_position(
            strategy, amount="100", days_ago=365, status=PositionStatusEnum.WITHDRAWN
        )
        service = YieldService(db_session, settings=test_settings, noise=lambda: 1.0)

        result = service.run_accrual(now=NOW)

        db_session.expire_all()
        assert result.total_positions == 0
        assert db_session.get(Position, withdrawn.id).current_value == Decimal("100")

    def test_tvl_is_sum_of_active_values(
        self, db_session, test_settings, make_strategy, make_position
    ):
        """TVL = 활성 포지션 current_value 합계, 포지션 없는 전략은 0"""
        busy = make_strategy(name="LP")
        idle = make_strategy(name="Idle")
        idle.tvl = Decimal("500")
        db_session.commit()
        make_position(busy, amount="100", days_ago=0)
        make_position(busy, amount="50", days_ago=0)
        make_position(busy, amount="70", days_ago=0, status=PositionStatusEnum.WITHDRAWN)
        service = YieldService(db_session, settings=test_settings, noise=lambda: 1.0)

        result = service.run_accrual(now=NOW)

        db_session.expire_all()
        assert result.strategies_updated == 2
        assert db_session.get(Strategy, busy.id).tvl == Decimal("150")
        assert db_session.get(Strategy, idle.id).tvl == Decimal("0")

    def test_auto_compound_positions_are_left_to_compounding(
        self, db_session, test_settings, make_strategy, make_position
    ):
        """auto_compound 포지션은 current_value 를 덮어쓰지 않지만 TVL 에는 포함"""
        strategy = make_strategy()
        compounding = make_position(strategy, amount="100", days_ago=365, auto_compound=True)
        service = YieldService(db_session, settings=test_settings, noise=lambda: 1.0)

        result = service.run_accrual(now=NOW)

        db_session.expire_all()
        assert result.total_positions == 0
        assert db_session.get(Position, compounding.id).current_value == Decimal("100")
        assert db_session.get(Strategy, strategy.id).tvl == Decimal("100")
