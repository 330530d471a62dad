"""
Vault Deposit 이벤트 로그 스캐너

eth_getLogs 로 지정한 블록 구간의 Deposit(address indexed user, uint256 amount,
uint256 timestamp) 로그를 읽어 DepositEvent 목록으로 변환합니다.
RPC 노드의 응답 크기 제한 때문에 LOG_SCAN_CHUNK_SIZE 블록 단위로 나누어 조회합니다.
"""

from typing import Iterator, List, Optional, Tuple

from web3 import Web3

from pointsapi.config import Settings
from pointsapi.core.exceptions import ServiceUnavailableError, ValidationError
from pointsapi.schemas.deposit import DepositEvent
import logging

logger = logging.getLogger(__name__)

VAULT_EVENTS_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "user", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
        ],
        "name": "Deposit",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "user", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
        ],
        "name": "Withdraw",
        "type": "event",
    },
]

DEPOSIT_EVENT_SIGNATURE = "Deposit(address,uint256,uint256)"


class LogScannerService:
    def __init__(self, settings: Settings, web3: Optional[Web3] = None):
        self.settings = settings
        self.web3 = web3 or Web3(
            Web3.HTTPProvider(settings.RPC_URL, request_kwargs={"timeout": 30})
        )
        self.vault_address = Web3.to_checksum_address(settings.VAULT_ADDRESS)
        self.contract = self.web3.eth.contract(
            address=self.vault_address, abi=VAULT_EVENTS_ABI
        )
        self.deposit_topic = Web3.to_hex(Web3.keccak(text=DEPOSIT_EVENT_SIGNATURE))

    def resolve_range(
        self, from_block: Optional[int] = None, to_block: Optional[int] = None
    ) -> Tuple[int, int]:
        """
        조회 구간 결정

        to_block 미지정 시 최신 블록, from_block 미지정 시
        to_block - BACKFILL_DEFAULT_BLOCK_WINDOW (최소 0) 을 사용합니다.
        """
        if to_block is None:
            to_block = self._latest_block()
        if from_block is None:
            from_block = max(0, to_block - self.settings.BACKFILL_DEFAULT_BLOCK_WINDOW)
        if from_block > to_block:
            raise ValidationError(
                "from_block must be less than or equal to to_block",
                details={"from_block": from_block, "to_block": to_block},
            )
        return from_block, to_block

    def iter_chunks(self, from_block: int, to_block: int) -> Iterator[Tuple[int, int]]:
        """[from_block, to_block] 을 LOG_SCAN_CHUNK_SIZE 크기의 닫힌 구간으로 분할"""
        chunk_size = max(1, self.settings.LOG_SCAN_CHUNK_SIZE)
        start = from_block
        while start <= to_block:
            end = min(start + chunk_size - 1, to_block)
            yield start, end
            start = end + 1

    def scan(
        self, from_block: Optional[int] = None, to_block: Optional[int] = None
    ) -> List[DepositEvent]:
        """구간 내 Deposit 이벤트를 (block_number, log_index) 순으로 반환"""
        from_block, to_block = self.resolve_range(from_block, to_block)
        logger.info(
            f"Scanning Deposit logs of {self.vault_address} from block {from_block} to {to_block}"
        )

        events: List[DepositEvent] = []
        for start, end in self.iter_chunks(from_block, to_block):
            raw_logs = self._get_logs(start, end)
            for raw_log in raw_logs:
                events.append(self._to_deposit_event(raw_log))
            logger.debug(f"Blocks {start}-{end}: {len(raw_logs)} deposit logs")

        events.sort(key=lambda e: (e.block_number or 0, e.log_index or 0))
        logger.info(f"Found {len(events)} deposit events")
        return events

    def _latest_block(self) -> int:
        try:
            return int(self.web3.eth.block_number)
        except Exception as e:
            logger.error(f"Failed to read latest block from {self.settings.RPC_URL}: {str(e)}")
            raise ServiceUnavailableError(
                message="RPC node unavailable", error_code="CHAIN_001"
            )

    def _get_logs(self, from_block: int, to_block: int) -> list:
        try:
            return self.web3.eth.get_logs(
                {
                    "address": self.vault_address,
                    "fromBlock": from_block,
                    "toBlock": to_block,
                    "topics": [self.deposit_topic],
                }
            )
        except Exception as e:
            logger.error(f"eth_getLogs failed for blocks {from_block}-{to_block}: {str(e)}")
            raise ServiceUnavailableError(
                message="RPC node unavailable",
                details={"from_block": from_block, "to_block": to_block},
                error_code="CHAIN_001",
            )

    def _to_deposit_event(self, raw_log) -> DepositEvent:
        decoded = self.contract.events.Deposit().process_log(raw_log)
        args = decoded["args"]
        return DepositEvent(
            address=args["user"],
            amount=Web3.from_wei(args["amount"], "ether"),
            tx_hash=Web3.to_hex(decoded["transactionHash"]),
            timestamp_seconds=int(args["timestamp"]),
            block_number=decoded["blockNumber"],
            log_index=decoded["logIndex"],
        )
