from fastapi import APIRouter, Depends
from dependency_injector.wiring import inject

from pointsapi.deps import get_auth_service
from pointsapi.schemas.auth import Token, WalletAuthRequest
from pointsapi.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/wallet", response_model=Token)
@inject
async def wallet_login(
    request: WalletAuthRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Token:
    """
    지갑 서명 로그인

    클라이언트가 서명한 메시지를 검증한 뒤 계정을 조회/생성하고 JWT 를 발급합니다.
    - chain=evm/base: personal_sign (EIP-191) 서명
    - chain=solana/ed25519: base58 ed25519 서명

    HTTP Status:
        200: 로그인 성공
        401: 서명 검증 실패
        422: 요청 형식 오류
    """
    return auth_service.wallet_login(request)
