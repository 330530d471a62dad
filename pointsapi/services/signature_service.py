"""
지갑 서명 검증

- evm / base: EIP-191 personal_sign 메시지에서 서명자 주소를 복원해 비교
- solana / ed25519: base58 공개키(주소)와 base58 서명을 ed25519 로 검증

디코딩 실패를 포함한 모든 검증 실패는 False 를 반환합니다.
"""

import base58
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
import logging

logger = logging.getLogger(__name__)

EVM_CHAINS = {"evm", "base"}
ED25519_CHAINS = {"ed25519", "solana"}


class SignatureService:
    def verify(self, chain: str, address: str, message: str, signature: str) -> bool:
        chain = (chain or "").lower()
        if chain in EVM_CHAINS:
            return self.verify_evm(address, message, signature)
        if chain in ED25519_CHAINS:
            return self.verify_ed25519(address, message, signature)
        logger.warning(f"Unsupported signature chain: {chain}")
        return False

    def verify_evm(self, address: str, message: str, signature: str) -> bool:
        try:
            recovered = EthAccount.recover_message(
                encode_defunct(text=message), signature=signature
            )
        except Exception as e:
            logger.info(f"EVM signature recovery failed for {address}: {str(e)}")
            return False
        return recovered.lower() == address.strip().lower()

    def verify_ed25519(self, address: str, message: str, signature: str) -> bool:
        try:
            verify_key = VerifyKey(base58.b58decode(address.strip()))
            verify_key.verify(message.encode("utf-8"), base58.b58decode(signature.strip()))
        except BadSignatureError:
            logger.info(f"Invalid ed25519 signature for {address}")
            return False
        except Exception as e:
            logger.info(f"Malformed ed25519 key or signature for {address}: {str(e)}")
            return False
        return True
