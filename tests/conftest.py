"""Pytest fixtures for testing"""

from datetime import date
from typing import Any, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from invoice_gateway.api.main import create_app
from invoice_gateway.infrastructure.database.models import Base
from invoice_gateway.infrastructure.database.session import get_db

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday; the January cycle of a card closing on the 10th has already closed
AS_OF = date(2026, 1, 15)


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
def card() -> Dict[str, Any]:
    """Aggregator card record: closes on the 10th, due on the 20th"""
    return {
        "id": "card_1",
        "closingDay": 10,
        "dueDay": 20,
        "creditLimit": 5000,
        "usedCreditLimit": 1200.50,
    }


@pytest.fixture
def raw_transactions() -> List[Dict[str, Any]]:
    """Raw aggregator transactions for card_1 around the reference date"""
    return [
        {"id": "tx_1", "description": "MERCADO CENTRAL", "amount": 10.10, "date": "2026-01-05", "type": "expense", "cardId": "card_1"},
        {"id": "tx_2", "description": "POSTO SHELL", "amount": 20.20, "date": "2026-01-06", "type": "expense", "cardId": "card_1"},
        {"id": "tx_3", "description": "PADARIA", "amount": 0.05, "date": "2026-01-07", "type": "expense", "cardId": "card_1"},
        {"id": "tx_4", "description": "FARMACIA", "amount": "45.90", "date": "2026-01-12", "type": "expense", "cardId": "card_1"},
        {"id": "tx_other", "description": "OUTRO CARTAO", "amount": 99.99, "date": "2026-01-06", "type": "expense", "cardId": "card_2"},
    ]
