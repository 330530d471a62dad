import os
import sys
from decimal import Decimal
from pathlib import Path

# Ensure project root is on path for `pointsapi` imports
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_TOKEN", "test-internal-token")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pointsapi.config import Settings
from pointsapi.models import Account, Base, Strategy

EVM_ADDRESS = "0x" + "ab" * 20
OTHER_EVM_ADDRESS = "0x" + "cd" * 20


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="sqlite://",
        DEPOSIT_BASE_POINTS_RATE=1000,
        DEPOSIT_POINTS_MULTIPLIER=2.0,
        YIELD_NOISE_ENABLED=False,
        LOG_SCAN_CHUNK_SIZE=100,
        BACKFILL_DEFAULT_BLOCK_WINDOW=250,
    )


@pytest.fixture
def make_account(db_session):
    def _make(address: str = EVM_ADDRESS, is_admin: bool = False) -> Account:
        account = Account(address=address.lower(), chain="evm", is_admin=is_admin)
        db_session.add(account)
        db_session.commit()
        return account

    return _make


@pytest.fixture
def make_strategy(db_session):
    def _make(
        name: str = "ETH/USDC DEX LP",
        base_apy_bps: int = 1250,
        points_multiplier: Decimal = Decimal("2"),
        is_active: bool = True,
    ) -> Strategy:
        strategy = Strategy(
            name=name,
            protocol_type="lp_dex",
            chain="base",
            base_apy_bps=base_apy_bps,
            points_multiplier=points_multiplier,
            tvl=Decimal("0"),
            is_active=is_active,
        )
        db_session.add(strategy)
        db_session.commit()
        return strategy

    return _make


@pytest.fixture
def client(engine):
    """실제 앱 + 테스트 엔진 세션을 사용하는 TestClient"""
    from fastapi.testclient import TestClient

    from pointsapi.database.session import get_db
    from pointsapi.main import app

    TestingSession = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def internal_headers():
    return {"Authorization": f"Bearer {os.environ['AUTH_TOKEN']}"}


@pytest.fixture
def auth_headers():
    """계정에 대한 JWT Authorization 헤더 생성"""
    from pointsapi.core.security import create_access_token

    def _make(account: Account) -> dict:
        token = create_access_token(data={"user_id": account.id, "address": account.address})
        return {"Authorization": f"Bearer {token}"}

    return _make
