"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from installment_ledger.api.dependencies import get_notification_client
from installment_ledger.api.main import create_app
from installment_ledger.infrastructure.database.models import Base, CatalogItem, Customer
from installment_ledger.infrastructure.database.repositories import CatalogRepository, CustomerRepository
from installment_ledger.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FIXED_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Stands in for the notification dispatcher and keeps every emitted event"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def emit(self, events: List[Dict[str, Any]]) -> None:
        self.events.extend(events)

    def types(self) -> List[str]:
        return [e["event"] for e in self.events]


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
    """Factory for extra sessions against the same test database"""
    return TestingSessionLocal


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database and a recording notifier"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_client] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def customer(db: Session) -> Customer:
    """Customer with a 100,000.00 credit limit"""
    db_customer = CustomerRepository(db).create_customer("Ana Torres", 10_000_000, FIXED_NOW, phone="555-0100")
    db.commit()
    return db_customer


@pytest.fixture
def small_customer(db: Session) -> Customer:
    """Customer with exactly 500.00 of credit"""
    db_customer = CustomerRepository(db).create_customer("Luis Perez", 50_000, FIXED_NOW)
    db.commit()
    return db_customer


@pytest.fixture
def catalog(db: Session) -> Dict[str, CatalogItem]:
    """Catalog stock keyed by short name"""
    repo = CatalogRepository(db)
    items = {
        "laptop": repo.add_item("Laptop", 100_000, 5, sku="LAP-001"),
        "mouse": repo.add_item("Mouse", 2_500, 50, sku="MOU-001"),
        "monitor": repo.add_item("Monitor", 30_000, 2, sku="MON-001"),
    }
    db.commit()
    return items
