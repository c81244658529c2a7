"""Root conftest: shared test configuration and fixtures.

Invariants:
    - Every test gets a fresh SQLite database file (aiosqlite, NullPool), so
      separate sessions really are separate connections
    - Redis and the push provider are replaced by tests.fakes
"""

import os

# Must be set before notifier.core.config is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_notifier.db")
os.environ.setdefault("WORKER_IDLE_BACKOFF_SECONDS", "0.01")

import pytest

from notifier.core.database import build_engine, build_session_factory, init_db
from notifier.services.queue import NotificationQueue
from notifier.services.worker import NotificationWorker

from tests.fakes import FakeRedis, RecordingGateway


@pytest.fixture
async def test_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'notifier.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def queue(fake_redis):
    return NotificationQueue(fake_redis, key="test:notifications")


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def worker(queue, gateway, session_factory):
    return NotificationWorker(
        queue, gateway, session_factory=session_factory,
        idle_backoff=0.01, shutdown_timeout=2, broadcast_topic="all",
    )
