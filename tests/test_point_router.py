from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from pointsapi.deps import get_leaderboard_service
from pointsapi.main import app

from pointsapi.services.point_service import PointService

ADDRESS = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20


@pytest.fixture
def seeded_points(db_session):
    points = PointService(db_session)
    points.credit(ADDRESS, points=100, idempotency_key="seed:1")
    points.credit(OTHER, points=300, idempotency_key="seed:2")


class TestLeaderboardRoutes:
    """순위 / 포인트 조회 라우터 테스트"""

    def test_get_leaderboard(self, client, seeded_points):
        # When
        response = client.get("/api/v1/leaderboard", params={"page": 1, "limit": 10})

        # Then
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [e["address"] for e in data["entries"]] == [OTHER, ADDRESS]
        assert [e["rank"] for e in data["entries"]] == [1, 2]

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_get_leaderboard_invalid_paging(self, client, params):
        response = client.get("/api/v1/leaderboard", params=params)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_get_user_points(self, client, seeded_points):
        response = client.get(f"/api/v1/points/{ADDRESS.upper().replace('0X', '0x')}")

        assert response.status_code == 200
        data = response.json()
        assert data["address"] == ADDRESS
        assert Decimal(data["total_points"]) == Decimal("100")
        assert data["rank"] == 2

    def test_get_unknown_user_points(self, client):
        response = client.get(f"/api/v1/points/{'0x' + '99' * 20}")

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_points"]) == Decimal("0")
        assert data["rank"] is None

    def test_get_points_history(self, client, seeded_points):
        response = client.get(f"/api/v1/points/{ADDRESS}/history", params={"limit": 5})

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert len(entries) == 1
        assert entries[0]["idempotency_key"] == "seed:1"


class TestAdminPointRoutes:
    """관리자 포인트 라우터 테스트"""

    def test_admin_credit_requires_admin(self, client, make_account, auth_headers):
        user = make_account(ADDRESS)

        response = client.post(
            "/api/v1/points/admin/credit",
            json={"address": OTHER, "points": "10"},
            headers=auth_headers(user),
        )

        assert response.status_code == 403

    def test_admin_credit_requires_token(self, client):
        response = client.post(
            "/api/v1/points/admin/credit", json={"address": OTHER, "points": "10"}
        )

        assert response.status_code == 401

    def test_admin_credit_and_integrity(self, client, make_account, auth_headers):
        # Given
        admin = make_account(ADDRESS, is_admin=True)
        headers = auth_headers(admin)

        # When
        credit = client.post(
            "/api/v1/points/admin/credit",
            json={
                "address": OTHER,
                "points": "10",
                "activity_type": "referral",
                "idempotency_key": "referral:42",
            },
            headers=headers,
        )
        replay = client.post(
            "/api/v1/points/admin/credit",
            json={
                "address": OTHER,
                "points": "10",
                "activity_type": "referral",
                "idempotency_key": "referral:42",
            },
            headers=headers,
        )
        integrity = client.get(f"/api/v1/points/admin/integrity/{OTHER}", headers=headers)
        global_check = client.get("/api/v1/points/admin/integrity/global", headers=headers)

        # Then
        assert credit.status_code == 200
        assert Decimal(credit.json()["points"]) == Decimal("40")
        assert replay.json()["id"] == credit.json()["id"]
        assert integrity.json()["status"] == "OK"
        assert Decimal(integrity.json()["recorded_balance"]) == Decimal("40")
        assert global_check.json()["status"] == "OK"

    def test_rebuild_unknown_address(self, client, make_account, auth_headers):
        admin = make_account(ADDRESS, is_admin=True)

        response = client.post(
            f"/api/v1/points/admin/rebuild/{'0x' + '77' * 20}", headers=auth_headers(admin)
        )

        assert response.status_code == 404


class TestStoreOutage:
    def test_connection_error_maps_to_retryable_503(self, client):
        service = Mock()
        service.get_page.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))
        app.dependency_overrides[get_leaderboard_service] = lambda: service

        response = client.get("/api/v1/leaderboard")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORE_001"
