"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

import pytest  # type: ignore[import-not-found]

from goal_audit.core.database import Database
from goal_audit.core.scheduler import Scheduler
from goal_audit.core.storage import StorageManager
from goal_audit.core.tracker import GoalTracker


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 11, 16, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualScheduler(Scheduler):
    """Scheduler whose callback only runs when the test fires it."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock
        self.delay: Optional[float] = None
        self.callback: Optional[Callable[[], None]] = None
        self.arm_count = 0

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.arm_count += 1

    def disarm(self) -> None:
        self.delay = None
        self.callback = None

    @property
    def armed(self) -> bool:
        return self.callback is not None

    def fire(self) -> None:
        """Advance the clock by the armed delay and run the callback."""
        assert self.callback is not None, "scheduler is not armed"
        callback = self.callback
        if self.clock is not None and self.delay is not None:
            self.clock.advance(self.delay)
        callback()


class RecordingNotifier:
    """Notifier that remembers what it was asked to show."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, title: str, message: str) -> None:
        self.messages.append((title, message))


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at a fixed time."""
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> ManualScheduler:
    """Manual scheduler bound to the fake clock."""
    return ManualScheduler(clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Recording notifier."""
    return RecordingNotifier()


@pytest.fixture
def storage(tmp_path: Path) -> StorageManager:
    """Storage manager writing into a temporary directory."""
    return StorageManager(tmp_path / "goals.json")


@pytest.fixture
def database() -> Database:
    """Empty database."""
    return Database()


@pytest.fixture
def tracker(
    storage: StorageManager,
    database: Database,
    scheduler: ManualScheduler,
    notifier: RecordingNotifier,
    clock: FakeClock,
) -> GoalTracker:
    """Tracker wired to fakes and temporary storage."""
    return GoalTracker(
        storage=storage,
        database=database,
        scheduler=scheduler,
        notifier=notifier,
        clock=clock,
        idle_timeout=300,
    )
