"""
Pytest configuration and fixtures
"""
import json
import os
import tempfile

# Settings are read at import time, point them at throwaway resources first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(tempfile.gettempdir(), "habitpush-tests.db")
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("REDIS_URL", None)
os.environ.pop("SENTRY_DSN", None)

import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from pywebpush import WebPushException
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from database import Base, get_async_session
from habitpush.core.auth import create_access_token
from habitpush.core.locking import FileLockBackend
from habitpush.models import (
    User,
    Challenge,
    Progression,
    ProgressionStatus,
    NotificationPreference,
    Reminder,
    Recurrence,
    PushSubscription,
)
from habitpush.services.push_service import PushService, get_push_service
from main import app


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code
        self.text = f"status {status_code}"


class FakeSender:
    """
    Stands in for pywebpush.webpush.
    failures maps an endpoint to an HTTP status (raised as WebPushException)
    or to an exception instance raised as is.
    """

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = []

    def __call__(self, subscription_info, data=None, **kwargs):
        endpoint = subscription_info["endpoint"]
        self.calls.append({
            "endpoint": endpoint,
            "keys": subscription_info["keys"],
            "payload": json.loads(data),
            **kwargs,
        })
        failure = self.failures.get(endpoint)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            raise WebPushException(f"Push failed: {failure}", response=FakeResponse(failure))
        return FakeResponse(201)

    @property
    def endpoints(self):
        return [call["endpoint"] for call in self.calls]


@pytest.fixture
async def engine(tmp_path):
    """
    File based SQLite per test. NullPool gives every session its own
    connection, like separate workers against a real database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def push_service(sender, session_factory) -> PushService:
    return PushService(
        vapid_public_key="test-public-key",
        vapid_private_key="test-private-key",
        vapid_email="mailto:test@example.com",
        sender=sender,
        session_factory=session_factory,
        ttl=60,
    )


@pytest.fixture
def lock_backend(tmp_path) -> FileLockBackend:
    return FileLockBackend(str(tmp_path / "locks"))


async def create_user(db: AsyncSession, name: str, new_challenge=None) -> User:
    user = User(email=f"{name}@example.com", username=name)
    db.add(user)
    await db.flush()
    if new_challenge is not None:
        db.add(NotificationPreference(user_id=user.id, new_challenge=new_challenge))
    await db.commit()
    return user


@pytest.fixture
async def user(db_session) -> User:
    return await create_user(db_session, "alice")


@pytest.fixture
async def other_user(db_session) -> User:
    return await create_user(db_session, "bob")


@pytest.fixture
async def challenge(db_session) -> Challenge:
    challenge = Challenge(name="Meatless Monday", description="No meat for a day")
    db_session.add(challenge)
    await db_session.commit()
    return challenge


@pytest.fixture
def make_progression(db_session, challenge):
    async def _make(owner: User) -> Progression:
        progression = Progression(
            user_id=owner.id,
            challenge_id=challenge.id,
            status=ProgressionStatus.IN_PROGRESS,
            started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        db_session.add(progression)
        await db_session.commit()
        return progression
    return _make


@pytest.fixture
async def progression(make_progression, user) -> Progression:
    return await make_progression(user)


@pytest.fixture
def make_reminder(db_session):
    async def _make(
        progression: Progression,
        scheduled_at_utc: datetime,
        recurrence: Recurrence = Recurrence.NONE,
        tz: str = "Europe/Paris",
        is_active: bool = True,
    ) -> Reminder:
        reminder = Reminder(
            progression_id=progression.id,
            scheduled_at_utc=scheduled_at_utc,
            recurrence=recurrence,
            timezone=tz,
            is_active=is_active,
        )
        db_session.add(reminder)
        await db_session.commit()
        return reminder
    return _make


@pytest.fixture
def make_subscription(db_session):
    async def _make(owner: User, endpoint: str, is_active: bool = True) -> PushSubscription:
        subscription = PushSubscription(
            user_id=owner.id,
            p256dh="BPublicKey",
            auth="authsecret",
            is_active=is_active,
        )
        subscription.set_endpoint(endpoint)
        db_session.add(subscription)
        await db_session.commit()
        return subscription
    return _make


async def reload(session_factory, model, pk):
    """Fresh copy of a row, read through a new session"""
    async with session_factory() as session:
        return await session.get(model, pk)


def auth_headers_for(owner: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(owner.id)})}"}


@pytest.fixture
def auth_headers(user) -> dict:
    return auth_headers_for(user)


@pytest.fixture
async def client(session_factory, push_service) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database and fake push sender"""
    async def override_session():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_push_service] = lambda: push_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
