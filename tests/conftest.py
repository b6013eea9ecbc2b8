"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_creator_wallet.db")

from datetime import timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from creator_wallet.api.main import create_app
from creator_wallet.infrastructure.database.models import Base, CompanyWallet
from creator_wallet.infrastructure.database.session import get_db
from creator_wallet.services.billing import BillingCycleManager
from creator_wallet.services.processor import TransactionProcessor
from creator_wallet.utils.date_utils import utc_now

# Test database
TEST_DATABASE_URL = "sqlite:///./test_creator_wallet.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

COMPANY_ID = 1
CREATOR_ID = 7


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Independent sessions on the test database, e.g. one per thread"""
    return TestingSessionLocal


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def company_headers() -> dict:
    return {"X-Company-Id": str(COMPANY_ID), "X-User-Id": "100"}


@pytest.fixture
def creator_headers() -> dict:
    return {"X-User-Id": str(CREATOR_ID)}


@pytest.fixture
def processor(db: Session) -> TransactionProcessor:
    return TransactionProcessor(db)


@pytest.fixture
def wallet(processor: TransactionProcessor) -> CompanyWallet:
    """Empty wallet for COMPANY_ID"""
    return processor.open_wallet(COMPANY_ID)


@pytest.fixture
def funded_wallet(processor: TransactionProcessor, wallet: CompanyWallet) -> CompanyWallet:
    """Wallet holding R$ 500,00"""
    processor.deposit(wallet.id, 50000, "credit")
    return wallet


@pytest.fixture
def open_cycle(db: Session, wallet: CompanyWallet):
    """A 30-day cycle that started 5 days ago"""
    now = utc_now()
    return BillingCycleManager(db).configure_cycle(wallet.id, now - timedelta(days=5), now + timedelta(days=25))
