"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any application import so the global
settings object picks them up: in-memory counter store, throwaway SQLite
database, deterministic JWT secret.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pytest-0123456789")
os.environ.setdefault("APP_SERVICE_NAME", "user-service-test")
os.environ.setdefault("APP_INSTANCE_ID", "test-instance-1")

from collections.abc import Iterator  # noqa: E402
from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.adapters.rate_limit.in_memory import InMemoryCounterStore  # noqa: E402
from app.api.deps import get_health_service  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.rate_limit import get_counter_store  # noqa: E402
from app.main import app  # noqa: E402
from app.services.health_service import HealthService  # noqa: E402

# In-memory SQLite shared across connections so every session sees the same tables
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


class FakeClock:
    """Manually advanced monotonic clock for counter store tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db_session() -> Iterator[Session]:
    """Fresh schema per test."""
    Base.metadata.create_all(bind=_test_engine)
    session = _TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=_test_engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def counter_store(clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def health_repository() -> Mock:
    return Mock()


@pytest.fixture
def client(
    db_session: Session,
    counter_store: InMemoryCounterStore,
    health_repository: Mock,
) -> Iterator[TestClient]:
    """TestClient wired to the SQLite session, a fresh counter store and a mock health repo."""

    def override_get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_counter_store] = lambda: counter_store
    app.dependency_overrides[get_health_service] = lambda: HealthService(
        health_repository,
        service_name="user-service-test",
        instance_id="test-instance-1",
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def valid_registration() -> dict[str, str]:
    return {
        "username": "testuser001",
        "password": "my_SECURE_password123@",
        "display_name": "Test User",
        "email": "testuser001@example.com",
    }
