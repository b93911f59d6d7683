"""
Pytest fixtures for WakeGate tests.
"""

import os
import threading
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Ensure test config is set before importing wakegate modules.
os.environ.setdefault("WAKEGATE_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("WAKEGATE_ENV", "development")
os.environ.setdefault("WAKEGATE_DATABASE_URL", "sqlite+aiosqlite:///./wakegate_test.db")
os.environ.setdefault("WAKEGATE_RESCHEDULE_ON_STARTUP", "false")

from wakegate.config import Settings
from wakegate.db.base import Base
import wakegate.db.tables  # noqa: F401
from wakegate.engine import RefCountedHold, ReleaseError
from wakegate.observability.metrics import metrics
from wakegate.runtime import WakeGate


class CountingHold(RefCountedHold):
    """Hold primitive that records every acquire and release."""

    def __init__(self, name: str, reference_counted: bool = True):
        super().__init__(name, reference_counted=reference_counted)
        self._stats_lock = threading.Lock()
        self.acquires = 0
        self.releases = 0
        self.failed_releases = 0

    def acquire(self) -> None:
        super().acquire()
        with self._stats_lock:
            self.acquires += 1

    def release(self) -> None:
        try:
            super().release()
        except ReleaseError:
            with self._stats_lock:
                self.failed_releases += 1
            raise
        with self._stats_lock:
            self.releases += 1


class HoldSpy:
    """Factory that hands out one ``CountingHold`` and remembers it."""

    def __init__(self) -> None:
        self.created = 0
        self.primitive: CountingHold | None = None

    def __call__(self, name: str) -> CountingHold:
        self.created += 1
        self.primitive = CountingHold(name)
        return self.primitive

    @property
    def acquires(self) -> int:
        return self.primitive.acquires if self.primitive else 0

    @property
    def releases(self) -> int:
        return self.primitive.releases if self.primitive else 0


class FakeClock:
    """Epoch-millisecond clock under test control."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class RecordingTimer:
    """Timer facility that records arm and cancel requests."""

    def __init__(self) -> None:
        self.armed = []
        self.cancelled = []

    def arm(self, trigger, target) -> None:
        self.armed.append((trigger, target))

    def cancel(self, target) -> bool:
        self.cancelled.append(target)
        return True


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
async def engine(tmp_path):
    """Per-test SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wakegate_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Drop-in replacement for ``wakegate.db.base.get_session``."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def get_test_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return get_test_session


@pytest.fixture
def hold_spy():
    return HoldSpy()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timer():
    return RecordingTimer()


@pytest.fixture
def test_settings():
    return Settings(
        dispatch_max_attempts=3,
        dispatch_retry_backoff_seconds=0.01,
        dispatch_max_backoff_seconds=0.05,
        dispatch_poll_interval_seconds=0.01,
        reschedule_on_startup=False,
    )


@pytest.fixture
async def gate(test_settings, hold_spy, session_factory, clock):
    """A started runtime wired to test doubles."""
    gate = WakeGate(
        config=test_settings,
        hold_factory=hold_spy,
        session_factory=session_factory,
        clock=clock,
    )
    await gate.start()
    yield gate
    await gate.stop()
