"""Pytest configuration and shared fixtures: per-test SQLite DB, fake push transport, fake mailer, API client."""

import os
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Set test settings before app imports so config/engine use them
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from app.core.auth import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.class_record import ClassRecord, ClassType
from app.models.push_subscription import PushSubscription
from app.models.user import User
from app.services.club_email import SkipEmailResult
from app.services.clock import FixedClock
from app.services.push_notifications import DeliveryOutcome
from app.services.reminder_dispatch import NotificationDispatcher
from app.services.reminder_responses import ResponseCorrelator
from app.services.reminder_scheduler import ReminderScheduler

pytest_plugins = ["pytest_asyncio"]

# Wednesday; target date 7 days later is Wednesday 2026-12-02
WEDNESDAY_NOW = datetime(2026, 11, 25, 9, 0, tzinfo=timezone.utc)


@dataclass
class SentPush:
    endpoint: str
    keys: dict
    payload: object
    ttl_seconds: int
    urgency: str


class FakePushTransport:
    """Records sends. Outcome per endpoint via `outcomes`; endpoints in `raise_for` raise RuntimeError."""

    def __init__(self):
        self.sent: list[SentPush] = []
        self.outcomes: dict[str, DeliveryOutcome] = {}
        self.raise_for: set[str] = set()

    async def send(self, endpoint, keys, payload, *, ttl_seconds=60, urgency="high"):
        self.sent.append(SentPush(endpoint, keys, payload, ttl_seconds, urgency))
        if endpoint in self.raise_for:
            raise RuntimeError(f"transport exploded for {endpoint}")
        return self.outcomes.get(endpoint, DeliveryOutcome.OK)


class FakeMailer:
    """Records skip notifications. Set `result` or `error` to change behavior."""

    def __init__(self):
        self.calls: list[tuple[str, str, str, date]] = []
        self.result = SkipEmailResult(success=True)
        self.error: Exception | None = None

    async def send_skip_notification(self, member_email, member_name, class_title, class_date):
        self.calls.append((member_email, member_name, class_title, class_date))
        if self.error is not None:
            raise self.error
        return self.result


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh file-backed SQLite DB per test. NullPool so every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def fake_transport():
    return FakePushTransport()


@pytest.fixture
def fake_mailer():
    return FakeMailer()


@pytest.fixture
def fixed_clock():
    return FixedClock(WEDNESDAY_NOW)


@pytest.fixture
def dispatcher(session_maker, fake_transport):
    return NotificationDispatcher(session_maker, fake_transport)


@pytest.fixture
def reminder_scheduler(session_maker, dispatcher, fixed_clock):
    return ReminderScheduler(session_maker, dispatcher, fixed_clock, horizon_days=7, tz=timezone.utc)


@pytest.fixture
def correlator(fake_mailer):
    return ResponseCorrelator(fake_mailer)


async def add_user(session_maker, email="member@test.com", name="Member", is_admin=False) -> User:
    async with session_maker() as session:
        user = User(email=email, name=name, is_admin=is_admin)
        session.add(user)
        await session.commit()
        return user


async def add_one_time_class(session_maker, user_id, when: datetime, title="Forehand drills", **kwargs) -> ClassRecord:
    class_type = kwargs.pop("class_type", ClassType.ONE_ON_ONE)
    async with session_maker() as session:
        cls = ClassRecord.one_time(
            user_id=user_id,
            title=title,
            class_type=class_type,
            date_time=when,
            **kwargs,
        )
        session.add(cls)
        await session.commit()
        return cls


async def add_recurring_class(
    session_maker, user_id, weekday: int, at: time = time(18, 0), title="Group training", **kwargs
) -> ClassRecord:
    class_type = kwargs.pop("class_type", ClassType.GROUP)
    async with session_maker() as session:
        cls = ClassRecord.recurring(
            user_id=user_id,
            title=title,
            class_type=class_type,
            weekday=weekday,
            time_of_day=at,
            **kwargs,
        )
        session.add(cls)
        await session.commit()
        return cls


async def add_subscription(session_maker, user_id, endpoint="https://push.example/abc") -> PushSubscription:
    async with session_maker() as session:
        sub = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh="p256dh-key", auth="auth-key")
        session.add(sub)
        await session.commit()
        return sub


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest_asyncio.fixture
async def client(session_maker, fake_transport, fake_mailer, reminder_scheduler):
    """AsyncClient against the app with DB and reminder services pointed at the per-test fixtures."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.response_correlator = ResponseCorrelator(fake_mailer)
    app.state.push_transport = fake_transport
    app.state.reminder_scheduler = reminder_scheduler
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
    del app.state.response_correlator
    del app.state.push_transport
    del app.state.reminder_scheduler
