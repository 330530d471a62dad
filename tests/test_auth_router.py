import base58
from eth_account import Account
from eth_account.messages import encode_defunct
from nacl.signing import SigningKey

MESSAGE = "Sign in to Vault Points"


class TestAuthRoutes:
    """지갑 로그인 라우터 테스트"""

    def test_evm_wallet_login(self, client):
        # Given
        wallet = Account.create()
        signed = Account.sign_message(encode_defunct(text=MESSAGE), private_key=wallet.key)

        # When
        response = client.post(
            "/api/v1/auth/wallet",
            json={
                "address": wallet.address,
                "message": MESSAGE,
                "signature": "0x" + bytes(signed.signature).hex(),
                "chain": "evm",
            },
        )

        # Then
        assert response.status_code == 200
        data = response.json()
        assert data["address"] == wallet.address.lower()
        assert data["token_type"] == "bearer"

        positions = client.get(
            "/api/v1/positions",
            headers={"Authorization": f"Bearer {data['access_token']}"},
        )
        assert positions.status_code == 200

    def test_solana_wallet_login(self, client):
        signing_key = SigningKey.generate()
        address = base58.b58encode(bytes(signing_key.verify_key)).decode()
        signature = signing_key.sign(MESSAGE.encode("utf-8")).signature

        response = client.post(
            "/api/v1/auth/wallet",
            json={
                "address": address,
                "message": MESSAGE,
                "signature": base58.b58encode(signature).decode(),
                "chain": "solana",
            },
        )

        assert response.status_code == 200
        assert response.json()["address"] == address.lower()

    def test_invalid_signature(self, client):
        response = client.post(
            "/api/v1/auth/wallet",
            json={
                "address": "0x" + "ab" * 20,
                "message": MESSAGE,
                "signature": "0x" + "00" * 65,
                "chain": "evm",
            },
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"

    def test_unsupported_chain(self, client):
        response = client.post(
            "/api/v1/auth/wallet",
            json={"address": "a", "message": MESSAGE, "signature": "s", "chain": "cosmos"},
        )

        assert response.status_code == 422


class TestHealthRoutes:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
