# Pytest configuration for the API and booking-workflow tests.
# Forces a local SQLite DB, disables Redis, and pins the JWT secret for deterministic runs.
import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Must be set before stayhub.db builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("STAYHUB_JWT_SECRET", "test-secret")

from stayhub.main import app  # noqa: E402
from stayhub.db import Base, SessionLocal, engine  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db() -> Iterator[None]:
    """Create the schema once per session and drop it at the end."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_db() -> Iterator[None]:
    """Recreate the schema before every test; the suite is small enough for this."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db() -> Iterator[Session]:
    """A session for tests that drive booking_engine/notifier directly."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
