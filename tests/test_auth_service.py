from unittest.mock import Mock

import pytest

from pointsapi.core.exceptions import AuthenticationError
from pointsapi.core.security import decode_access_token
from pointsapi.models.account import Account
from pointsapi.schemas.auth import WalletAuthRequest
from pointsapi.services.auth_service import AuthService

ADDRESS = "0x" + "AB" * 20


@pytest.fixture
def signature_service():
    service = Mock()
    service.verify.return_value = True
    return service


@pytest.fixture
def auth_service(db_session, test_settings, signature_service):
    return AuthService(db_session, settings=test_settings, signature_service=signature_service)


def _request(**overrides) -> WalletAuthRequest:
    data = {"address": ADDRESS, "message": "login", "signature": "0xsig", "chain": "evm"}
    data.update(overrides)
    return WalletAuthRequest(**data)


class TestAuthService:
    """지갑 로그인 테스트"""

    def test_first_login_creates_account_and_issues_token(self, auth_service, db_session):
        # Act
        token = auth_service.wallet_login(_request())

        # Assert
        account = db_session.query(Account).one()
        assert account.address == ADDRESS.lower()
        assert account.chain == "evm"
        assert account.last_login_at is not None
        assert token.address == ADDRESS.lower()
        assert token.user_id == account.id

        payload = decode_access_token(token.access_token)
        assert payload.user_id == account.id
        assert payload.address == ADDRESS.lower()

    def test_repeat_login_reuses_account(self, auth_service, db_session):
        first = auth_service.wallet_login(_request())
        second = auth_service.wallet_login(_request(address=ADDRESS.lower()))

        assert first.user_id == second.user_id
        assert db_session.query(Account).count() == 1

    def test_signature_checked_against_submitted_address(self, auth_service, signature_service):
        auth_service.wallet_login(_request(chain="solana", address="So1anaAddr"))

        signature_service.verify.assert_called_once_with("solana", "So1anaAddr", "login", "0xsig")

    def test_solana_login_records_chain(self, auth_service, db_session):
        auth_service.wallet_login(_request(chain="solana", address="So1anaAddr"))

        assert db_session.query(Account).one().chain == "solana"

    def test_invalid_signature_is_rejected(self, auth_service, signature_service, db_session):
        signature_service.verify.return_value = False

        with pytest.raises(AuthenticationError):
            auth_service.wallet_login(_request())

        assert db_session.query(Account).count() == 0

    def test_disabled_account_cannot_login(self, auth_service, db_session):
        db_session.add(Account(address=ADDRESS.lower(), chain="evm", is_active=False))
        db_session.commit()

        with pytest.raises(AuthenticationError):
            auth_service.wallet_login(_request())
