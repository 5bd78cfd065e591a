"""Shared test fixtures and configuration."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gatepass.main import app
from gatepass.db.base import Base
from gatepass.db.models import Attendee, Event
from gatepass.api.deps import get_db, get_codec, get_credential_store
from gatepass.core.credentials import CredentialCodec
from gatepass.core.security import create_access_token
from gatepass.core.storage import LocalImageStorage
from gatepass.services import CredentialStore, CredentialVerifier, PresenceStateMachine
from tests.utils import TEST_SECRET


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(autouse=True)
def disable_rate_limiting_for_tests():
    """Rate limits are per-IP and every TestClient request comes from the same one."""
    from gatepass.core.rate_limit import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh database for each test."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a new database session for a test."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def codec():
    return CredentialCodec(TEST_SECRET, image_size=300, max_version=25)


@pytest.fixture
def storage(tmp_path):
    return LocalImageStorage(str(tmp_path / "storage"))


@pytest.fixture
def store(storage):
    return CredentialStore(storage)


@pytest.fixture
def verifier(codec):
    return CredentialVerifier(codec)


@pytest.fixture
def machine(store):
    return PresenceStateMachine(store)


@pytest.fixture
def event(db_session):
    event = Event(name="Annual Conference", slug="annual-conference")
    db_session.add(event)
    db_session.commit()
    db_session.refresh(event)
    return event


@pytest.fixture
def make_attendee(db_session, event):
    """Factory for attendees of the default event."""
    counter = {"n": 0}

    def _make(**kwargs) -> Attendee:
        counter["n"] += 1
        fields = {
            "event_id": event.id,
            "name": f"Attendee {counter['n']}",
            "email": f"attendee{counter['n']}@example.com",
        }
        fields.update(kwargs)
        attendee = Attendee(**fields)
        db_session.add(attendee)
        db_session.commit()
        db_session.refresh(attendee)
        return attendee

    return _make


@pytest.fixture
def attendee(make_attendee):
    return make_attendee()


@pytest.fixture(scope="function")
def client(db_session, codec, store):
    """Create a test client with a test database, codec and storage."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_codec] = lambda: codec
    app.dependency_overrides[get_credential_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers():
    token = create_access_token({"sub": "staff-7", "role": "staff"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin-1", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}
