"""Shared test fixtures."""

import os

# Must be set before hadith_admin.config builds its settings singleton.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hadith_admin.auth.models import User  # noqa: E402
from hadith_admin.cron_logs.models import CronLog  # noqa: E402
from hadith_admin.database import Base  # noqa: E402
from hadith_admin.errors import DeliveryError  # noqa: E402
from hadith_admin.hadiths.models import Hadith  # noqa: E402
from hadith_admin.notifications.models import Notification  # noqa: E402

# Models must be imported so Base.metadata.create_all() sees all tables.
_ALL_MODELS = [User, Notification, Hadith, CronLog]


@pytest.fixture
def session_factory():
    """Session factory over an in-memory SQLite database shared by all its sessions."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_user(db_session):
    """Create a test admin user."""
    user = User(
        id=uuid.uuid4(),
        email="admin@example.com",
        password_hash="$2b$12$fakehash",
    )
    db_session.add(user)
    db_session.commit()
    return user


class FakeGateway:
    """Records every send; raises DeliveryError for titles listed in fail_titles."""

    def __init__(self, fail_titles=()):
        self.sent = []
        self.fail_titles = set(fail_titles)

    def send(self, title, body):
        if title in self.fail_titles:
            raise DeliveryError(f"FCM rejected {title}")
        self.sent.append((title, body))
        return f"projects/test/messages/{len(self.sent)}"


class FakeClock:
    """Injectable clock returning a settable aware UTC instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args) -> None:
        self.now = datetime(*args, tzinfo=UTC)

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 1, 9, 0, 20, tzinfo=UTC))
