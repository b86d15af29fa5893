"""
Shared fixtures: isolated in-memory SQLite per test, a controllable clock,
and a FastAPI TestClient wired to the test database.
"""
import os
import tempfile
from datetime import datetime, timedelta

# Must be set before upi_tracker is imported (settings are cached at import)
_TMP_DIR = tempfile.mkdtemp(prefix="upi_tracker_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["ENABLE_EXPIRY_SCHEDULER"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from upi_tracker.database import get_db, init_db
from upi_tracker.services.payment_service import LifecycleConfig, PaymentService
from upi_tracker.services.payment_store import PaymentStore
from upi_tracker.utils.rate_limiter import reset_rate_limits


class FakeClock:
    """Callable clock. Each call returns the current time, then advances by `tick`."""

    def __init__(self, start: datetime | None = None, tick: timedelta = timedelta(0)):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)
        self.tick = tick

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.tick
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db_session):
    return PaymentStore(db_session)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return LifecycleConfig(expiry_minutes=15)


@pytest.fixture
def service(store, config, clock):
    return PaymentService(store, config, clock=clock)


@pytest.fixture
def client(session_factory):
    from upi_tracker.main import app

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    reset_rate_limits()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        reset_rate_limits()
