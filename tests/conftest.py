"""Pytest fixtures for the approval API."""
import os
import tempfile

# Sinks read their directories at import time; point them somewhere disposable first.
_TMP = tempfile.mkdtemp(prefix="ridesharex-tests-")
os.environ.setdefault("AUDIT_DIR", os.path.join(_TMP, "audit"))
os.environ.setdefault("HISTORY_PACK_DIR", os.path.join(_TMP, "packs"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ridesharex.main import app
from ridesharex.core.database import Base, get_db
from ridesharex.core.security import create_access_token
from ridesharex.crud.listings import listing_crud
from ridesharex.deps.services import get_notifier
from ridesharex.models.user import User
from ridesharex.services.lifecycle import Actor, ApprovalLifecycleService
from ridesharex.services.notifications import CompositeNotifier, DatabaseNotifier, Notifier

# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotifier(Notifier):
    """Captures events instead of dispatching them."""
    channel = "recording"

    def __init__(self):
        self.events = []

    def send(self, event):
        self.events.append(event)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def recorder():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(db_session, recorder):
    """Test client with database and notifier overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: CompositeNotifier(
        [DatabaseNotifier(TestingSessionLocal), recorder]
    )

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def service(db_session, recorder):
    return ApprovalLifecycleService(db_session, notifier=recorder)


def _make_user(db, email, role, status="pending", full_name=None):
    user = User(email=email, full_name=full_name or email.split("@")[0].title(), role=role, status=status)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db_session):
    def factory(email, role="renter", status="pending", full_name=None):
        return _make_user(db_session, email, role, status, full_name)
    return factory


@pytest.fixture
def admin_user(db_session):
    return _make_user(db_session, "admin@ridesharex.test", "admin", status="approved")


@pytest.fixture
def host_user(db_session):
    return _make_user(db_session, "host@ridesharex.test", "host")


@pytest.fixture
def renter_user(db_session):
    return _make_user(db_session, "renter@ridesharex.test", "renter")


@pytest.fixture
def make_listing(db_session):
    def factory(host, **overrides):
        data = {
            "title": "Reliable commuter",
            "make": "Toyota",
            "model": "Corolla",
            "year": 2021,
            "daily_rate": 45,
            "location": "Cape Town",
        }
        data.update(overrides)
        return listing_crud.create_listing(db_session, host.id, data)
    return factory


@pytest.fixture
def listing(make_listing, host_user):
    return make_listing(host_user)


def actor_of(user):
    return Actor(id=user.id, role=user.role)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
