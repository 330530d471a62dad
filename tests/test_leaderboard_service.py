from decimal import Decimal

import pytest

from pointsapi.core.exceptions import ValidationError
from pointsapi.services.leaderboard_service import LeaderboardService
from pointsapi.services.point_service import PointService

ALICE = "0x" + "11" * 20
BOB = "0x" + "22" * 20
CAROL = "0x" + "33" * 20


@pytest.fixture
def leaderboard_service(db_session, test_settings):
    return LeaderboardService(db_session, settings=test_settings)


@pytest.fixture
def seeded(db_session):
    """BOB 300, ALICE 300 (동점), CAROL 100"""
    points = PointService(db_session)
    points.credit(BOB, points=300)
    points.credit(CAROL, points=100)
    points.credit(ALICE, points=200)
    points.credit(ALICE, points=100)


class TestLeaderboardService:
    """순위 조회 테스트"""

    def test_page_orders_by_points_then_address(self, leaderboard_service, seeded):
        page = leaderboard_service.get_page(page=1, limit=10)

        assert [e.address for e in page.entries] == [ALICE, BOB, CAROL]
        assert [e.rank for e in page.entries] == [1, 2, 3]
        assert page.entries[0].total_points == Decimal("300")
        assert page.total == 3

    def test_pages_are_contiguous_and_deterministic(self, leaderboard_service, seeded):
        first = leaderboard_service.get_page(page=1, limit=2)
        second = leaderboard_service.get_page(page=2, limit=2)
        again = leaderboard_service.get_page(page=1, limit=2)

        assert [e.rank for e in first.entries] == [1, 2]
        assert [(e.rank, e.address) for e in second.entries] == [(3, CAROL)]
        assert first.entries == again.entries

    def test_page_past_end_is_empty(self, leaderboard_service, seeded):
        page = leaderboard_service.get_page(page=5, limit=10)

        assert page.entries == []

    @pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (1, 101), (-1, 5)])
    def test_invalid_paging_is_rejected(self, leaderboard_service, page, limit):
        with pytest.raises(ValidationError):
            leaderboard_service.get_page(page=page, limit=limit)

    def test_default_limit_from_settings(self, leaderboard_service, seeded):
        page = leaderboard_service.get_page()

        assert page.limit == 20

    def test_user_points_rank_matches_page(self, leaderboard_service, seeded):
        bob = leaderboard_service.get_user_points(BOB.upper().replace("0X", "0x"))

        assert bob.address == BOB
        assert bob.total_points == Decimal("300")
        assert bob.rank == 2

    def test_unknown_user_has_zero_points_and_no_rank(self, leaderboard_service, seeded):
        result = leaderboard_service.get_user_points("0x" + "99" * 20)

        assert result.total_points == Decimal("0")
        assert result.rank is None

    def test_empty_address_is_rejected(self, leaderboard_service):
        with pytest.raises(ValidationError):
            leaderboard_service.get_user_points("   ")

    def test_history_is_newest_first_and_limited(self, leaderboard_service, seeded):
        history = leaderboard_service.get_points_history(ALICE, limit=1)
        full = leaderboard_service.get_points_history(ALICE)

        assert len(history.entries) == 1
        assert history.entries[0].points == Decimal("100")
        assert [e.points for e in full.entries] == [Decimal("100"), Decimal("200")]

    def test_history_limit_is_validated(self, leaderboard_service):
        with pytest.raises(ValidationError):
            leaderboard_service.get_points_history(ALICE, limit=0)
