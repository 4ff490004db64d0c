"""Shared pytest fixtures for buddy_schedule tests."""

import os

# Keep the application away from the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import buddy_schedule.models  # noqa: F401
from buddy_schedule.database import Base, enable_sqlite_foreign_keys, get_db
from buddy_schedule.main import app
from buddy_schedule.models import MemberRole, User
from buddy_schedule.services.schedule_service import ScheduleService
from buddy_schedule.services.user_service import UserService

PASSWORD = "password1"
WEEK_START = date(2024, 1, 1)  # a Monday

NIGHT_AND_SLEEP = {
    "slots": [
        {"dow": 0, "period": "night", "start": "18:00", "end": "22:00"},
        {"dow": 1, "period": "sleep", "start": "22:00", "end": "08:00"},
    ]
}


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory) -> TestClient:
    """API client whose requests use the test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users and a populated schedule
# ---------------------------------------------------------------------------


def register(db: Session, email: str) -> User:
    return UserService(db).register_user(email, PASSWORD)


@pytest.fixture
def root(db) -> User:
    """First registered user, therefore superadmin."""
    return register(db, "root@example.com")


@pytest.fixture
def alice(db, root) -> User:
    return register(db, "alice@example.com")


@pytest.fixture
def bob(db, root) -> User:
    return register(db, "bob@example.com")


@pytest.fixture
def carol(db, root) -> User:
    """Registered but never added to any schedule."""
    return register(db, "carol@example.com")


@pytest.fixture
def service(db) -> ScheduleService:
    return ScheduleService(db)


@pytest.fixture
def schedule(service, alice, bob):
    """Schedule administered by alice with bob as a plain member."""
    created = service.create_schedule(alice, "Care", "pet", "Puppy")
    service.add_member(alice, created.id, bob.email, MemberRole.USER)
    return created
