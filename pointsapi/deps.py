from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.orm import Session

from pointsapi.config import settings
from pointsapi.containers import Container
from pointsapi.database.session import get_db

# Services
from pointsapi.services.auto_compound_service import AutoCompoundService
from pointsapi.services.auth_service import AuthService
from pointsapi.services.deposit_service import DepositService
from pointsapi.services.holding_points_service import HoldingPointsService
from pointsapi.services.holdings_reader_service import HoldingsReaderService
from pointsapi.services.leaderboard_service import LeaderboardService
from pointsapi.services.log_scanner_service import LogScannerService
from pointsapi.services.point_service import PointService
from pointsapi.services.position_service import PositionService
from pointsapi.services.settlement_service import SettlementService
from pointsapi.services.signature_service import SignatureService
from pointsapi.services.yield_service import YieldService


def get_point_service(db: Session = Depends(get_db)) -> PointService:
    return PointService(db=db)


def get_leaderboard_service(db: Session = Depends(get_db)) -> LeaderboardService:
    return LeaderboardService(db=db, settings=settings)


@inject
def get_deposit_service(
    db: Session = Depends(get_db),
    scanner: LogScannerService = Depends(Provide[Container.services.log_scanner_service]),
) -> DepositService:
    return DepositService(db=db, settings=settings, scanner=scanner)


def get_yield_service(db: Session = Depends(get_db)) -> YieldService:
    return YieldService(db=db, settings=settings)


def get_auto_compound_service(db: Session = Depends(get_db)) -> AutoCompoundService:
    return AutoCompoundService(db=db)


@inject
def get_holding_points_service(
    db: Session = Depends(get_db),
    reader: HoldingsReaderService = Depends(
        Provide[Container.services.holdings_reader_service]
    ),
) -> HoldingPointsService:
    return HoldingPointsService(db=db, settings=settings, reader=reader)


def get_position_service(db: Session = Depends(get_db)) -> PositionService:
    return PositionService(db=db)


def get_settlement_service(db: Session = Depends(get_db)) -> SettlementService:
    return SettlementService(db=db)


@inject
def get_auth_service(
    db: Session = Depends(get_db),
    signature_service: SignatureService = Depends(
        Provide[Container.services.signature_service]
    ),
) -> AuthService:
    return AuthService(db=db, settings=settings, signature_service=signature_service)
