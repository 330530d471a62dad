import hmac
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pointsapi.config import settings
from pointsapi.core.exceptions import AuthenticationError, AuthorizationError
from pointsapi.core.security import decode_access_token
from pointsapi.database.session import get_db
from pointsapi.repositories.account_repository import AccountRepository
from pointsapi.schemas.account import AccountResponse
from pointsapi.schemas.auth import TokenData

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def _require_credentials(
    credentials: Optional[HTTPAuthorizationCredentials],
) -> str:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenData:
    """필수 사용자 인증 - 지갑 로그인으로 발급된 JWT 필요"""
    token = _require_credentials(credentials)
    try:
        return decode_access_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def verify_internal_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """이벤트 수집기 / 스케줄러 등 내부 호출자 인증 (AUTH_TOKEN)"""
    token = _require_credentials(credentials)
    expected = settings.AUTH_TOKEN
    if not expected or not hmac.compare_digest(token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_account(
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AccountResponse:
    """토큰의 user_id 로 계정을 조회하고 비활성 계정은 거부"""
    account = AccountRepository(db).get_by_id(current_user.user_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive account",
        )
    return account


def require_admin(
    current_account: AccountResponse = Depends(get_current_account),
) -> AccountResponse:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not current_account.is_admin:
        raise AuthorizationError("Admin access required")
    return current_account
