"""Tests for the threading scheduler."""

import threading
from datetime import datetime

from goal_audit.core.scheduler import ThreadingScheduler, system_clock


class TestThreadingScheduler:
    """Test ThreadingScheduler."""

    def test_fires_callback(self) -> None:
        """Test that an armed callback runs."""
        scheduler = ThreadingScheduler()
        fired = threading.Event()

        scheduler.arm(0.01, fired.set)

        assert fired.wait(timeout=2)
        # Firing clears the pending timer
        scheduler.disarm()
        assert not scheduler.armed

    def test_disarm_prevents_callback(self) -> None:
        """Test that disarming cancels the callback."""
        scheduler = ThreadingScheduler()
        fired = threading.Event()

        scheduler.arm(0.5, fired.set)
        assert scheduler.armed
        scheduler.disarm()

        assert not scheduler.armed
        assert not fired.wait(timeout=0.8)

    def test_rearm_replaces_pending_callback(self) -> None:
        """Test that only the latest callback runs."""
        scheduler = ThreadingScheduler()
        first = threading.Event()
        second = threading.Event()

        scheduler.arm(0.3, first.set)
        scheduler.arm(0.01, second.set)

        assert second.wait(timeout=2)
        assert not first.wait(timeout=0.5)

    def test_superseded_timer_does_not_run_callback(self) -> None:
        """Test that a timer replaced after its wait ended stays silent."""
        scheduler = ThreadingScheduler()
        calls: list[str] = []

        scheduler.arm(60, lambda: calls.append("old"))
        scheduler.arm(60, lambda: calls.append("new"))

        # The old timer's thread reaching _fire after the re-arm
        scheduler._fire(lambda: calls.append("old"))

        assert calls == []
        assert scheduler.armed
        scheduler.disarm()

    def test_disarmed_timer_does_not_run_callback(self) -> None:
        """Test that a late fire after disarm is ignored."""
        scheduler = ThreadingScheduler()
        calls: list[str] = []

        scheduler.arm(60, lambda: calls.append("old"))
        scheduler.disarm()
        scheduler._fire(lambda: calls.append("old"))

        assert calls == []
        assert not scheduler.armed

    def test_disarm_when_idle(self) -> None:
        """Test disarming with nothing pending."""
        scheduler = ThreadingScheduler()

        scheduler.disarm()

        assert not scheduler.armed


def test_system_clock() -> None:
    """Test the system clock returns local time."""
    before = datetime.now()
    assert before <= system_clock() <= datetime.now()
