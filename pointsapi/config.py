from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


def _split_addresses(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="pointsapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Points API"
    PROJECT_NAME: str = "Vault Points API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "points"

    # Takes precedence over POSTGRES_* when set (e.g. sqlite for local runs)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    AUTH_TOKEN: str = ""  # internal token for ingestion / batch callers

    # Deposit points
    DEPOSIT_BASE_POINTS_RATE: int = 1000  # points per 1 unit of native currency
    DEPOSIT_POINTS_MULTIPLIER: float = 2.0  # promotional multiplier
    DEPOSIT_CHAIN: str = "base"

    # Yield accrual
    YIELD_NOISE_ENABLED: bool = True
    YIELD_NOISE_MIN: float = 0.98
    YIELD_NOISE_MAX: float = 1.02
    YIELD_ACCRUAL_INTERVAL_MINUTES: int = 60

    # Holding points (one credit per activity type per tick)
    HOLDING_POINTS_INTERVAL_MINUTES: int = 60
    HOLDING_TOKEN_ADDRESS: Optional[str] = None  # vault share token, defaults to VAULT_ADDRESS
    HOLDING_TOKEN_DECIMALS: int = 18
    LP_POOL_ADDRESSES: str = ""  # comma separated LP token addresses
    LP_TOKEN_DECIMALS: int = 18
    LENDING_COLLATERAL_ADDRESSES: str = ""  # comma separated collateral receipt tokens
    LENDING_TOKEN_DECIMALS: int = 18

    # Chain / log scanning
    RPC_URL: str = "https://sepolia.base.org"
    VAULT_ADDRESS: str = "0x360cD279d4Da74688ADA2B1274BE2AE3C0DA08e1"
    LOG_SCAN_CHUNK_SIZE: int = 2000
    BACKFILL_DEFAULT_BLOCK_WINDOW: int = 50000

    # Leaderboard
    LEADERBOARD_DEFAULT_LIMIT: int = 20
    LEADERBOARD_MAX_LIMIT: int = 100
    POINTS_HISTORY_DEFAULT_LIMIT: int = 30

    @property
    def lp_pool_addresses(self) -> List[str]:
        return _split_addresses(self.LP_POOL_ADDRESSES)

    @property
    def lending_collateral_addresses(self) -> List[str]:
        return _split_addresses(self.LENDING_COLLATERAL_ADDRESSES)


settings = Settings()
