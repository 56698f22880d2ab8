"""
Shared fixtures for the subscription key service tests.
"""

import os

# Environment must be in place before any keyhub module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["API_KEYS"] = "test-api-key,secondary-api-key"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-enough-length-1234"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin-test-password"
os.environ["ENABLE_SWEEP_SCHEDULER"] = "false"
os.environ["ENABLE_RATE_LIMITING"] = "false"
os.environ["ENABLE_METRICS"] = "false"
os.environ["SENTRY_DSN"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from keyhub.db.session import build_engine, create_db_and_tables, get_session
from keyhub.db.models.subscription_key import SubscriptionKeyRead
from keyhub.db.store import SubscriptionKeyStore

TEST_API_KEY = "test-api-key"
ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="function")
def test_engine():
    """Fresh in-memory database for each test."""
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)

    yield engine

    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def file_engine(tmp_path):
    """File-backed database for tests that use several threads."""
    engine = build_engine(f"sqlite:///{tmp_path / 'keys.db'}")
    create_db_and_tables(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session(test_engine):
    """Get database session for testing."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def store(session):
    return SubscriptionKeyStore(session)


@pytest.fixture
def now():
    return datetime.utcnow().replace(microsecond=0)


@pytest.fixture
def make_key(store, now):
    """Factory inserting a key record directly through the store."""

    def _make_key(key="K1", plan_type="basic", owner_id="42", expires_in=None, **fields):
        expires_at = fields.pop("expires_at", None)
        if expires_in is not None:
            expires_at = now + expires_in
        record = SubscriptionKeyRead(
            key=key,
            owner_id=owner_id,
            plan_type=plan_type,
            created_at=fields.pop("created_at", now - timedelta(days=1)),
            expires_at=expires_at,
            **fields
        )
        return store.insert(record)

    return _make_key


@pytest.fixture
def client(session):
    """Test client sharing the test session with the routers."""
    from keyhub.api.main import app

    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def api_headers():
    return {"X-API-Key": TEST_API_KEY}


@pytest.fixture
def admin_user(session):
    from keyhub.api.services import AuthService

    return AuthService.create_admin(session, "operator", ADMIN_PASSWORD)


@pytest.fixture
def admin_headers(client, admin_user):
    response = client.post(
        "/admin/login",
        json={"username": admin_user.username, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
