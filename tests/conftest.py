import os
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

os.environ.setdefault("RWD_ENV", "test")
os.environ.setdefault("RWD_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RWD_DELIVERY_INLINE", "true")
os.environ.setdefault("RWD_CRON_API_KEY", "test-cron-key")
os.environ.setdefault("RWD_DELIVERY_CHANNEL_URL", "")
os.environ.setdefault("RWD_ALERT_WEBHOOK_URL", "")
os.environ.setdefault("RWD_ALERT_TOPIC_ARN", "")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from rewards_core.core.config import get_settings

get_settings.cache_clear()

from rewards_core.core.database import engine, session_scope  # noqa: E402
from rewards_core.main import create_app  # noqa: E402
from rewards_core.models import (  # noqa: E402
    Base,
    ClaimHistoryRecord,
    PendingReward,
    RewardStatus,
    Subscription,
    SystemEvent,
    User,
)
from rewards_core.models.types import utcnow  # noqa: E402
from rewards_core.monitoring.alerts import AlertDispatcher  # noqa: E402
from rewards_core.monitoring.service import MonitoringService  # noqa: E402
from rewards_core.services.delivery_channel import DeliveryChannelError  # noqa: E402
from rewards_core.services.rewards import RewardsService  # noqa: E402

PLACEHOLDER_USER_ID = uuid.UUID(int=1)


class StubChannel:
    """Delivery channel that records grants and fails the first ``failures`` calls."""

    def __init__(self) -> None:
        self.calls: List[Any] = []
        self.failures = 0
        self.fail_always = False

    def deliver(self, reward) -> None:
        self.calls.append(reward.id)
        if self.fail_always or self.failures > 0:
            self.failures = max(self.failures - 1, 0)
            raise DeliveryChannelError("game server unavailable")


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDateClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@contextmanager
def broken_session_scope():
    raise OperationalError("SELECT 1", {}, Exception("database unavailable"))
    yield  # pragma: no cover


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def channel() -> StubChannel:
    return StubChannel()


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def alert_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def date_clock() -> FakeDateClock:
    return FakeDateClock()


@pytest.fixture()
def broken_scope():
    return broken_session_scope


@pytest.fixture()
def alerts() -> List[tuple]:
    return []


@pytest.fixture()
def dispatcher(alert_clock, alerts) -> AlertDispatcher:
    dispatcher = AlertDispatcher(clock=alert_clock)
    dispatcher.register_alert_handler(lambda alert_type, data, severity: alerts.append((alert_type, data, severity)))
    return dispatcher


@pytest.fixture()
def monitoring(dispatcher) -> MonitoringService:
    return MonitoringService(environment="test", dispatcher=dispatcher)


@pytest.fixture()
def rewards_service(monitoring, channel, sleeps) -> RewardsService:
    return RewardsService(monitoring=monitoring, channel=channel, sleep=sleeps.append)


@pytest.fixture()
def client(channel, dispatcher, sleeps) -> TestClient:  # noqa: ANN001
    app = create_app(channel=channel, dispatcher=dispatcher, sleep=sleeps.append)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user():
    def _make_user(
        discord_id: str = "1001",
        *,
        steam_id: Optional[str] = "76561198000000001",
        role: str = "user",
        plan_id: Optional[str] = None,
    ) -> User:
        with session_scope() as session:
            user = User(discord_id=discord_id, steam_id=steam_id, username=f"player-{discord_id}", role=role)
            session.add(user)
            session.flush()
            if plan_id:
                session.add(
                    Subscription(
                        user_id=user.id,
                        plan_id=plan_id,
                        status="active",
                        expires_at=utcnow() + timedelta(days=30),
                    )
                )
        return user

    return _make_user


@pytest.fixture()
def make_reward():
    def _make_reward(
        *,
        status: RewardStatus = RewardStatus.PENDING,
        age: timedelta = timedelta(0),
        steam_id: str = "76561198000000001",
        day: int = 1,
        user_id=None,
    ) -> PendingReward:
        stamp = utcnow() - age
        with session_scope() as session:
            reward = PendingReward(
                user_id=user_id or PLACEHOLDER_USER_ID,
                steam_id=steam_id,
                day=day,
                status=status,
                claim_type="website",
                server_id="main",
                requested_at=stamp,
                created_at=stamp,
                updated_at=stamp,
            )
            session.add(reward)
        return reward

    return _make_reward


@pytest.fixture()
def make_claim_history():
    def _make_claim_history(user: User, *, day: int, age: timedelta) -> None:
        with session_scope() as session:
            session.add(
                ClaimHistoryRecord(
                    user_id=user.id,
                    steam_id=user.steam_id,
                    day=day,
                    vip_tier="none",
                    items=[],
                    claimed_at=utcnow() - age,
                )
            )

    return _make_claim_history


@pytest.fixture()
def fetch_events():
    def _fetch_events(event_type: Optional[str] = None) -> List[SystemEvent]:
        stmt = select(SystemEvent).order_by(SystemEvent.created_at.asc())
        if event_type:
            stmt = stmt.where(SystemEvent.event_type == event_type)
        with session_scope() as session:
            return list(session.scalars(stmt))

    return _fetch_events


@pytest.fixture()
def fetch_reward():
    def _fetch_reward(reward_id) -> Optional[PendingReward]:
        with session_scope() as session:
            return session.get(PendingReward, reward_id)

    return _fetch_reward
