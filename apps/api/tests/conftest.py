"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is created from
the ORM metadata before every test and dropped afterwards, so nothing leaks
between tests.
"""
import os
import sys

# Configuration must be in place before any application module is imported
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-0123456789"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "text"
os.environ["VITAL_WEBHOOK_SECRET"] = "vital-test-secret"
os.environ["TERRA_SIGNING_SECRET"] = "terra-test-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_dummy"
os.environ.pop("SENTRY_DSN", None)
# Vendor REST clients stay unconfigured; tests inject fakes
for _name in ("VITAL_API_KEY", "TERRA_DEV_ID", "TERRA_API_KEY"):
    os.environ.pop(_name, None)

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from core.database import Base, SessionLocal, engine
import models  # noqa: F401  (registers tables on Base.metadata)


@pytest.fixture(autouse=True)
def _schema():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """A session for seeding and inspecting rows; app requests use their own sessions."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

