from decimal import Decimal
from unittest.mock import Mock

import pytest

from pointsapi.main import app
from pointsapi.models.points import ActivityType

ADDRESS = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20


@pytest.fixture
def user(make_account):
    return make_account(ADDRESS)


@pytest.fixture
def strategy(make_strategy):
    return make_strategy()


class TestPositionRoutes:
    """전략 / 포지션 / 출금 라우터 테스트"""

    def test_list_strategies_is_public(self, client, strategy):
        response = client.get("/api/v1/strategies")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["name"] == "ETH/USDC DEX LP"
        assert data[0]["base_apy_bps"] == 1250

    def test_positions_require_login(self, client):
        assert client.get("/api/v1/positions").status_code == 401

    def test_open_list_and_withdraw(self, client, user, strategy, auth_headers):
        headers = auth_headers(user)

        # When
        opened = client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "100"},
            headers=headers,
        )
        position_id = opened.json()["id"]
        withdrawn = client.post(f"/api/v1/positions/{position_id}/withdraw", headers=headers)
        again = client.post(f"/api/v1/positions/{position_id}/withdraw", headers=headers)
        active = client.get("/api/v1/positions", params={"status": "active"}, headers=headers)

        # Then
        assert opened.status_code == 200
        assert Decimal(opened.json()["points_earned"]) == Decimal("200")
        assert withdrawn.status_code == 200
        assert Decimal(withdrawn.json()["final_yield"]) == Decimal("0")
        assert withdrawn.json()["tx_hash"].startswith("simulated_")
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "SETTLEMENT_001"
        assert active.json() == []

    def test_activity_feed(self, client, user, strategy, auth_headers):
        headers = auth_headers(user)
        opened = client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "10"},
            headers=headers,
        )
        client.post(f"/api/v1/positions/{opened.json()['id']}/withdraw", headers=headers)

        response = client.get("/api/v1/activity", headers=headers)

        assert response.status_code == 200
        types = {entry["activity_type"] for entry in response.json()}
        assert types == {"defi_deposit", "vault_withdrawal"}
        withdrawal = next(e for e in response.json() if e["activity_type"] == "vault_withdrawal")
        assert withdrawal["metadata"]["position_id"] == opened.json()["id"]

    def test_withdraw_with_tx_hash(self, client, user, strategy, auth_headers):
        headers = auth_headers(user)
        opened = client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "10"},
            headers=headers,
        )

        response = client.post(
            f"/api/v1/positions/{opened.json()['id']}/withdraw",
            json={"tx_hash": "0xfeed"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["tx_hash"] == "0xfeed"

    def test_withdraw_other_users_position(
        self, client, user, strategy, make_account, auth_headers
    ):
        opened = client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "10"},
            headers=auth_headers(user),
        )
        stranger = make_account(OTHER)

        response = client.post(
            f"/api/v1/positions/{opened.json()['id']}/withdraw",
            headers=auth_headers(stranger),
        )

        assert response.status_code == 409

    def test_open_position_unknown_strategy(self, client, user, auth_headers):
        response = client.post(
            "/api/v1/positions",
            json={"strategy_id": 999, "amount": "10"},
            headers=auth_headers(user),
        )

        assert response.status_code == 404

    def test_toggle_auto_compound(self, client, user, strategy, make_account, auth_headers):
        headers = auth_headers(user)
        opened = client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "10", "auto_compound": True},
            headers=headers,
        )
        position_id = opened.json()["id"]

        updated = client.patch(
            f"/api/v1/positions/{position_id}/auto-compound",
            json={"enabled": True, "compound_frequency": "weekly"},
            headers=headers,
        )
        stranger = client.patch(
            f"/api/v1/positions/{position_id}/auto-compound",
            json={"enabled": False},
            headers=auth_headers(make_account(OTHER)),
        )

        assert opened.json()["auto_compound"] is True
        assert opened.json()["compound_frequency"] == "daily"
        assert updated.status_code == 200
        assert updated.json()["compound_frequency"] == "weekly"
        assert stranger.status_code == 409

    def test_open_position_rejects_zero_amount(self, client, user, strategy, auth_headers):
        response = client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "0"},
            headers=auth_headers(user),
        )

        assert response.status_code == 422


class TestBatchRoutes:
    def test_yield_accrual_requires_internal_token(self, client):
        assert client.post("/api/v1/batch/yield-accrual").status_code == 401

    def test_yield_accrual_run(self, client, internal_headers, user, strategy, auth_headers):
        client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "100"},
            headers=auth_headers(user),
        )

        response = client.post(
            "/api/v1/batch/yield-accrual",
            params={"now": "2030-01-01T00:00:00Z"},
            headers=internal_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_positions"] == 1
        assert data["updated"] == 1
        assert data["strategies_updated"] == 1

    def test_auto_compound_run(self, client, internal_headers, user, strategy, auth_headers):
        client.post(
            "/api/v1/positions",
            json={"strategy_id": strategy.id, "amount": "100", "auto_compound": True},
            headers=auth_headers(user),
        )

        unauthorized = client.post("/api/v1/batch/auto-compound")
        response = client.post(
            "/api/v1/batch/auto-compound",
            params={"now": "2030-01-01T00:00:00Z"},
            headers=internal_headers,
        )

        assert unauthorized.status_code == 401
        assert response.status_code == 200
        assert response.json()["compounded"] == 1
        assert response.json()["results"][0]["success"] is True

    def test_holding_points_run(self, client, internal_headers, user):
        reader = Mock()
        reader.read.return_value = {ActivityType.HOLDING: Decimal("3")}

        with app.container.services.holdings_reader_service.override(reader):
            response = client.post(
                "/api/v1/batch/holding-points",
                params={"now": "2030-01-01T00:30:00Z"},
                headers=internal_headers,
            )
        points = client.get(f"/api/v1/points/{ADDRESS}")

        assert response.status_code == 200
        assert response.json()["tick"] == "20300101T0000Z"
        assert response.json()["processed"] == 1
        assert Decimal(points.json()["total_points"]) == Decimal("3")
