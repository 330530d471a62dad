from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.core.exceptions import AuthenticationError
from pointsapi.core.security import create_access_token
from pointsapi.models.account import ChainEnum
from pointsapi.repositories.account_repository import AccountRepository
from pointsapi.schemas.auth import Token, WalletAuthRequest
from pointsapi.services.signature_service import ED25519_CHAINS, SignatureService
from pointsapi.utils.timezone_utils import utc_now
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """지갑 서명 기반 인증"""

    def __init__(
        self, db: Session, settings: Settings, signature_service: SignatureService
    ):
        self.db = db
        self.settings = settings
        self.signature_service = signature_service
        self.account_repo = AccountRepository(db)

    def wallet_login(self, request: WalletAuthRequest) -> Token:
        """
        서명 검증 후 계정을 조회/생성하고 JWT 를 발급합니다.

        서명은 원본 주소로 검증하고 (base58 은 대소문자 구분),
        저장/토큰에는 소문자 정규화된 주소를 사용합니다.
        """
        if not self.signature_service.verify(
            request.chain, request.address, request.message, request.signature
        ):
            logger.warning(f"Invalid wallet signature for {request.address}")
            raise AuthenticationError("Invalid signature")

        chain = (
            ChainEnum.SOLANA.value if request.chain in ED25519_CHAINS else ChainEnum.EVM.value
        )
        try:
            account = self.account_repo.get_or_create(request.address, chain=chain)
            account = self.account_repo.touch_login(account.id, utc_now(), commit=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Wallet login failed for {request.address}: {str(e)}")
            raise

        if not account.is_active:
            raise AuthenticationError("Account is disabled")

        access_token = create_access_token(
            data={"user_id": account.id, "address": account.address}
        )
        logger.info(f"Wallet login: user {account.id} ({account.address})")
        return Token(
            access_token=access_token,
            token_type="bearer",
            user_id=account.id,
            address=account.address,
        )
