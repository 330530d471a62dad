from decimal import Decimal
from unittest.mock import Mock

import base58
import pytest
from sqlalchemy.exc import OperationalError

from pointsapi.core.exceptions import InvalidEventError, NotFoundError, StoreUnavailableError
from pointsapi.models.deposit import Deposit, DepositStatusEnum
from pointsapi.models.points import PointsHistory
from pointsapi.schemas.deposit import DepositEvent
from pointsapi.services.deposit_service import DepositService

ADDRESS = "0x" + "ab" * 20
TX_HASH = "0x" + "11" * 32


def _event(**overrides) -> DepositEvent:
    data = {
        "address": ADDRESS,
        "amount": Decimal("2.0"),
        "tx_hash": TX_HASH,
        "timestamp_seconds": 1_700_000_000,
        "block_number": 100,
        "log_index": 0,
    }
    data.update(overrides)
    return DepositEvent(**data)


@pytest.fixture
def deposit_service(db_session, test_settings):
    return DepositService(db_session, settings=test_settings)


class TestDepositIngest:
    """입금 이벤트 수집 테스트"""

    def test_two_eth_deposit_awards_4000_points(self, deposit_service):
        """2.0 ETH * 1000 * 2 = 4000 포인트"""
        # Act
        result = deposit_service.ingest(_event())

        # Assert
        assert result.credited is True
        assert result.points_awarded == Decimal("4000")
        assert deposit_service.point_service.get_balance(ADDRESS) == Decimal("4000")

    def test_replay_is_skipped_without_points(self, deposit_service, db_session):
        """같은 tx_hash 재전송 시 credited=False, 추가 적립 없음"""
        deposit_service.ingest(_event())

        replay = deposit_service.ingest(_event())

        assert replay.credited is False
        assert replay.points_awarded == Decimal("0")
        assert deposit_service.point_service.get_balance(ADDRESS) == Decimal("4000")
        assert db_session.query(Deposit).count() == 1
        assert db_session.query(PointsHistory).count() == 1

    def test_tx_hash_match_is_case_insensitive(self, deposit_service):
        deposit_service.ingest(_event())

        replay = deposit_service.ingest(_event(tx_hash=TX_HASH.upper().replace("0X", "0x")))

        assert replay.credited is False

    def test_deposit_record_and_ledger_entry(self, deposit_service, db_session):
        """입금 기록은 pending 상태로 저장되고 원장 키는 deposit:<tx_hash>"""
        deposit_service.ingest(_event(multiplier=Decimal("3")))

        deposit = db_session.query(Deposit).one()
        entry = db_session.query(PointsHistory).one()

        assert deposit.status == DepositStatusEnum.PENDING
        assert deposit.address == ADDRESS
        assert deposit.block_number == 100
        assert deposit.points_awarded == Decimal("6000")
        assert entry.idempotency_key == f"deposit:{TX_HASH}"
        assert entry.multiplier == Decimal("3")
        assert entry.points == Decimal("6000")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"address": None},
            {"address": "not-an-address"},
            {"address": "0x1234"},
            {"amount": Decimal("0")},
            {"amount": Decimal("-1")},
            {"amount": None},
            {"tx_hash": ""},
            {"tx_hash": None},
            {"multiplier": Decimal("0")},
            {"multiplier": Decimal("-2")},
        ],
    )
    def test_invalid_event_is_rejected(self, deposit_service, db_session, overrides):
        """잘못된 이벤트는 InvalidEventError, 아무것도 기록되지 않음"""
        with pytest.raises(InvalidEventError):
            deposit_service.ingest(_event(**overrides))

        assert db_session.query(Deposit).count() == 0

    def test_solana_address_is_accepted(self, deposit_service):
        solana_address = base58.b58encode(b"\x07" * 32).decode()
        signature = base58.b58encode(b"\x01" * 64).decode()

        result = deposit_service.ingest(_event(address=solana_address, tx_hash=signature))

        assert result.credited is True
        assert deposit_service.point_service.get_balance(solana_address) == Decimal("4000")

    def test_store_failure_raises_store_unavailable(self, deposit_service):
        """DB 연결 실패는 StoreUnavailableError (재시도 가능)"""
        deposit_service.deposit_repo.get_by_tx_hash = Mock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )

        with pytest.raises(StoreUnavailableError):
            deposit_service.ingest(_event())


class TestDepositBackfill:
    """백필 테스트"""

    def test_backfill_counts_partial_failures(self, deposit_service):
        """성공/중복/실패가 섞여도 나머지는 계속 처리"""
        events = [
            _event(tx_hash="0x" + "22" * 32, block_number=102, amount=Decimal("1")),
            _event(tx_hash="0x" + "33" * 32, block_number=101, amount=Decimal("0")),
            _event(block_number=100),
            _event(block_number=103),
        ]

        result = deposit_service.backfill(events)

        assert result.total_events == 4
        assert result.succeeded == 2
        assert result.skipped == 1
        assert result.errored == 1
        assert result.points_awarded == Decimal("6000")
        assert result.errors[0].tx_hash == "0x" + "33" * 32

    def test_backfill_processes_in_block_order(self, deposit_service, db_session):
        events = [
            _event(tx_hash="0x" + "44" * 32, block_number=300, log_index=0),
            _event(tx_hash="0x" + "55" * 32, block_number=200, log_index=1),
            _event(tx_hash="0x" + "66" * 32, block_number=200, log_index=0),
        ]

        deposit_service.backfill(events)

        ordered = [d.tx_hash for d in db_session.query(Deposit).order_by(Deposit.id)]
        assert ordered == ["0x" + "66" * 32, "0x" + "55" * 32, "0x" + "44" * 32]

    def test_backfill_range_uses_scanner(self, db_session, test_settings):
        scanner = Mock()
        scanner.scan.return_value = [_event()]
        service = DepositService(db_session, settings=test_settings, scanner=scanner)

        result = service.backfill_range(from_block=10, to_block=20)

        scanner.scan.assert_called_once_with(from_block=10, to_block=20)
        assert result.succeeded == 1


class TestDepositConfirm:
    def test_confirm_advances_pending_to_confirmed(self, deposit_service):
        deposit_service.ingest(_event())

        confirmed = deposit_service.confirm(TX_HASH)
        again = deposit_service.confirm(TX_HASH)

        assert confirmed.status == DepositStatusEnum.CONFIRMED
        assert again.status == DepositStatusEnum.CONFIRMED

    def test_confirm_unknown_hash_raises(self, deposit_service):
        with pytest.raises(NotFoundError):
            deposit_service.confirm("0x" + "99" * 32)


class TestConcurrentIngest:
    """같은 tx_hash 동시 수집 / 부분 실패 원자성"""

    def test_losing_concurrent_ingest_is_skipped(self, deposit_service, db_session):
        # Arrange: 다른 요청이 먼저 커밋했지만 이 요청의 선조회 시점에는 보이지 않음
        deposit_service.ingest(_event())
        winner = deposit_service.deposit_repo.get_by_tx_hash(TX_HASH)
        deposit_service.deposit_repo.get_by_tx_hash = Mock(side_effect=[None, winner])

        # Act
        result = deposit_service.ingest(_event())

        # Assert
        assert result.credited is False
        assert result.points_awarded == Decimal("0")
        assert db_session.query(Deposit).count() == 1
        assert db_session.query(PointsHistory).count() == 1
        assert deposit_service.point_service.get_balance(ADDRESS) == Decimal("4000")

    def test_ledger_failure_after_deposit_flush_writes_nothing(
        self, deposit_service, db_session
    ):
        """입금 기록 flush 이후 잔액 갱신이 실패하면 입금/원장/잔액 모두 롤백"""
        deposit_service.point_service.points_repo.increment_balance = Mock(
            side_effect=OperationalError("UPDATE", {}, Exception("connection reset"))
        )

        with pytest.raises(StoreUnavailableError):
            deposit_service.ingest(_event())

        assert db_session.query(Deposit).count() == 0
        assert db_session.query(PointsHistory).count() == 0
        assert deposit_service.point_service.get_balance(ADDRESS) == Decimal("0")

    def test_unexpected_credit_failure_rolls_back_deposit(
        self, deposit_service, db_session, test_settings
    ):
        deposit_service.point_service.credit = Mock(side_effect=RuntimeError("ledger bug"))

        with pytest.raises(RuntimeError):
            deposit_service.ingest(_event())

        assert db_session.query(Deposit).count() == 0
        retry = DepositService(db_session, settings=test_settings).ingest(_event())
        assert retry.credited is True
