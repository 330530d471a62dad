from dependency_injector import containers, providers

from pointsapi.config import Settings
from pointsapi.services.holdings_reader_service import HoldingsReaderService
from pointsapi.services.log_scanner_service import LogScannerService
from pointsapi.services.signature_service import SignatureService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class ServiceModule(containers.DeclarativeContainer):
    """Stateless service dependencies (DB-bound services come from deps.py)."""

    config = providers.DependenciesContainer()

    signature_service = providers.Singleton(SignatureService)
    log_scanner_service = providers.Factory(LogScannerService, settings=config.config)
    holdings_reader_service = providers.Factory(HoldingsReaderService, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "pointsapi.deps",
            "pointsapi.routers.auth_router",
            "pointsapi.routers.deposit_router",
        ],
    )

    config = providers.Container(ConfigModule)
    services = providers.Container(ServiceModule, config=config)
