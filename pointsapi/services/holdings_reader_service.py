"""
온체인 보유량 조회

ERC-20 balanceOf 로 지갑별 보유량을 읽어 포인트 적립 사유별 토큰 수량으로 변환합니다.
- holding_nbkusdc: Vault 지분 토큰 (ERC-4626)
- lp_dex: LP_POOL_ADDRESSES 의 LP 토큰 합계
- lending_collateral: LENDING_COLLATERAL_ADDRESSES 의 담보 영수증 토큰 합계
referral 은 온체인 출처가 없어 관리자 지급으로만 적립됩니다.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from web3 import Web3

from pointsapi.config import Settings
from pointsapi.core.exceptions import ServiceUnavailableError
from pointsapi.models.points import ActivityType
import logging

logger = logging.getLogger(__name__)

ERC20_BALANCE_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class HoldingsReaderService:
    def __init__(self, settings: Settings, web3: Optional[Web3] = None):
        self.settings = settings
        self.web3 = web3 or Web3(
            Web3.HTTPProvider(settings.RPC_URL, request_kwargs={"timeout": 30})
        )
        self.holding_token = settings.HOLDING_TOKEN_ADDRESS or settings.VAULT_ADDRESS

    def read(self, address: str) -> Dict[ActivityType, Decimal]:
        """
        지갑의 사유별 보유 토큰 수량 (decimals 반영)

        Raises:
            ServiceUnavailableError: RPC 호출 실패 (CHAIN_001)
        """
        owner = Web3.to_checksum_address(address)
        return {
            ActivityType.HOLDING: self._sum_balances(
                [self.holding_token], owner, self.settings.HOLDING_TOKEN_DECIMALS
            ),
            ActivityType.LP_DEX: self._sum_balances(
                self.settings.lp_pool_addresses, owner, self.settings.LP_TOKEN_DECIMALS
            ),
            ActivityType.LENDING: self._sum_balances(
                self.settings.lending_collateral_addresses,
                owner,
                self.settings.LENDING_TOKEN_DECIMALS,
            ),
        }

    def _sum_balances(self, tokens: List[str], owner: str, decimals: int) -> Decimal:
        raw_total = 0
        for token in tokens:
            raw_total += self._balance_of(token, owner)
        return Decimal(raw_total) / (Decimal(10) ** decimals)

    def _balance_of(self, token: str, owner: str) -> int:
        contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(token), abi=ERC20_BALANCE_ABI
        )
        try:
            return int(contract.functions.balanceOf(owner).call())
        except Exception as e:
            logger.error(f"balanceOf({owner}) failed on token {token}: {str(e)}")
            raise ServiceUnavailableError(
                message="RPC node unavailable",
                details={"token": token, "owner": owner},
                error_code="CHAIN_001",
            )
