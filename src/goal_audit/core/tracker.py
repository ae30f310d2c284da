"""Core goal tracking engine: the single active timer and idle auto-stop."""

import logging
from datetime import datetime
from functools import partial
from typing import Any, Optional, Protocol

from goal_audit.core.database import Database
from goal_audit.core.exceptions import (
    InconsistentStateError,
    InvalidArgumentError,
    PersistenceError,
)
from goal_audit.core.models import ActiveTimer, Entry, Status
from goal_audit.core.scheduler import Clock, Scheduler, ThreadingScheduler, system_clock
from goal_audit.core.storage import StorageManager

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 300  # 5 minutes


class NotifierLike(Protocol):
    """Anything that can show a notification."""

    def notify(self, title: str, message: str) -> None: ...


def format_elapsed(seconds: float) -> str:
    """Format seconds as HH:MM."""
    minutes = int(seconds) // 60
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class GoalTracker:
    """Owns the "currently working on" state of a goal database.

    The tracker is either idle (no active timer) or tracking exactly one
    entry. Stopping adds the elapsed wall-clock time to the tracked entry.
    While tracking, an idle timer stops tracking automatically once the user
    has been inactive for ``idle_timeout`` seconds, saves the database and
    notifies the user.
    """

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        database: Optional[Database] = None,
        scheduler: Optional[Scheduler] = None,
        notifier: Optional[NotifierLike] = None,
        clock: Optional[Clock] = None,
        idle_timeout: Optional[float] = DEFAULT_IDLE_TIMEOUT,
    ):
        """Initialize goal tracker.

        Args:
            storage: Storage manager instance. Creates default if None.
            database: Database to operate on. Loaded from storage if None.
            scheduler: Scheduler for the idle timer. Creates a threading one if None.
            notifier: Receives the idle auto-stop notification. None disables it.
            clock: Time source. Defaults to the system clock.
            idle_timeout: Seconds of inactivity before tracking stops. None disables it.
        """
        self.storage = storage or StorageManager()
        self.database = database if database is not None else self.storage.load()
        self.scheduler = scheduler or ThreadingScheduler()
        self.notifier = notifier
        self.clock = clock or system_clock
        self.idle_timeout = idle_timeout

    # State

    @property
    def is_tracking(self) -> bool:
        """Whether an entry is being tracked."""
        return self.database.active_timer is not None

    def current_entry(self) -> Optional[Entry]:
        """Return the tracked entry, or None when idle."""
        timer = self.database.active_timer
        if timer is None:
            return None
        return self.database.lookup(timer.entry_id)

    def elapsed(self) -> float:
        """Seconds elapsed on the running timer (0 when idle)."""
        timer = self.database.active_timer
        if timer is None:
            return 0.0
        return max(0.0, (self.clock() - timer.started_at).total_seconds())

    def is_active_entry(self, entry_id: Optional[int]) -> bool:
        """Check whether this id is the one being tracked."""
        return self.database.is_active_entry(entry_id)

    # Transitions

    def work_on(self, entry: Entry) -> Entry:
        """Start tracking an entry, stopping the current one first.

        Args:
            entry: Entry to work on. Must already be in the database

        Returns:
            The tracked entry

        Raises:
            InvalidArgumentError: If the entry is not in the database
            InconsistentStateError: If the previous timer referenced a missing entry
        """
        with self.database.lock:
            target = self.database.lookup(entry.id)
            if target is None:
                raise InvalidArgumentError(f"Entry is not in the database: {entry.goal!r}")

            self.stop_working()

            now = self.clock()
            target.set_status(Status.ON_THE_MOVE)
            target.mark_incomplete()
            target.touch(now)
            self.database.active_timer = ActiveTimer(started_at=now, entry_id=target.id)  # type: ignore[arg-type]

        logger.info(f"Started working on {target.id}: {target.goal!r}")
        return target

    def stop_working(self) -> Optional[Entry]:
        """Stop tracking and add the elapsed time to the tracked entry.

        Does nothing when idle, so it is safe to call twice in a row. A
        clock that went backwards accrues nothing rather than negative time.

        Returns:
            The stopped entry, or None if nothing was being tracked

        Raises:
            InconsistentStateError: If the tracked entry no longer exists
        """
        with self.database.lock:
            timer = self.database.active_timer
            if timer is None:
                return None

            now = self.clock()
            elapsed = (now - timer.started_at).total_seconds()
            if elapsed < 0:
                logger.warning(
                    f"Clock moved backwards by {-elapsed:.0f}s while tracking, recording no time"
                )
                elapsed = 0.0

            entry = self.database.lookup(timer.entry_id)
            self.database.active_timer = None
            if entry is None:
                logger.error(f"Active timer references missing entry {timer.entry_id}")
                raise InconsistentStateError(
                    f"Tracked entry {timer.entry_id} no longer exists; "
                    f"{elapsed:.0f}s of tracked time could not be recorded"
                )

            entry.add_time(elapsed)
            entry.touch(now)

        logger.info(f"Stopped working on {entry.id}: {entry.goal!r} (+{elapsed:.0f}s)")
        return entry

    def start(self, entry: Entry) -> Entry:
        """Work on an entry and arm the idle timer."""
        target = self.work_on(entry)
        self._arm_idle_timer()
        return target

    def stop(self) -> Optional[Entry]:
        """Stop working and disarm the idle timer."""
        self.scheduler.disarm()
        return self.stop_working()

    def toggle_active(self, entry: Entry) -> Optional[Entry]:
        """Stop the entry if it is tracked, otherwise switch to it.

        Args:
            entry: Entry to toggle

        Returns:
            The newly tracked entry, or None if tracking stopped
        """
        with self.database.lock:
            if self.database.is_active_entry(entry.id):
                self.stop()
                return None

            self.stop_working()
            return self.start(entry)

    def cancel(self) -> bool:
        """Discard the running timer without recording any time.

        Returns:
            True if a timer was discarded, False if nothing was being tracked
        """
        self.scheduler.disarm()
        with self.database.lock:
            timer = self.database.active_timer
            if timer is None:
                return False
            self.database.active_timer = None
        logger.info(f"Discarded timer for entry {timer.entry_id}")
        return True

    # Idle handling

    def record_activity(self) -> None:
        """Note user interaction; restarts the idle window while tracking."""
        if self.is_tracking:
            self._arm_idle_timer()

    def _arm_idle_timer(self) -> None:
        if self.idle_timeout is None:
            return
        with self.database.lock:
            session = self.database.active_timer
            if session is None:
                return
            self.scheduler.arm(self.idle_timeout, partial(self._on_idle, session))

    def _on_idle(self, session: ActiveTimer) -> None:
        """Idle timer callback: stop, save and notify. Does not re-arm.

        Only stops the session the timer was armed for. If tracking was
        stopped or switched to another goal since, the callback is stale and
        does nothing.
        """
        with self.database.lock:
            if self.database.active_timer is not session:
                logger.debug(f"Ignoring stale idle timer for entry {session.entry_id}")
                return

            self.scheduler.disarm()
            try:
                entry = self.stop_working()
            except InconsistentStateError as e:
                self._save_after_inconsistency()
                self._notify("Goal tracking stopped", str(e))
                raise
        assert entry is not None

        logger.info(f"Idle for {self.idle_timeout}s, stopped tracking {entry.goal!r}")
        try:
            self.save()
        except PersistenceError as e:
            self._notify("Goal tracking stopped, save failed", str(e))
            return

        self._notify(
            "Goal tracking stopped",
            f"Idle for {format_elapsed(self.idle_timeout or 0)}, stopped working on "
            f"{entry.goal!r} ({format_elapsed(entry.accumulated_time)} total)",
        )

    def _save_after_inconsistency(self) -> None:
        """Persist the cleared dangling timer; a failure here is only logged."""
        try:
            self.save()
        except PersistenceError as e:
            logger.error(f"Failed to save after clearing dangling timer: {e}")

    def _notify(self, title: str, message: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(title, message)

    # Database passthroughs

    def create_entry(
        self,
        category: str,
        goal: str,
        estimate: Any = 0.0,
        now: Optional[datetime] = None,
    ) -> Entry:
        """Create a new goal stamped with the tracker's clock."""
        return self.database.create_entry(category, goal, estimate, now=now or self.clock())

    def delete_entry(self, entry_id: int) -> None:
        """Delete an entry. Deleting the tracked entry leaves the timer dangling."""
        if self.database.is_active_entry(entry_id):
            logger.warning(f"Deleting entry {entry_id} while it is being tracked")
        self.database.delete(entry_id)

    def save(self) -> None:
        """Persist the database.

        Raises:
            PersistenceError: If the database cannot be written
        """
        self.storage.save(self.database)

    def shutdown(self) -> Optional[Entry]:
        """Stop tracking, disarm the idle timer and save.

        Returns:
            The stopped entry, or None if nothing was being tracked
        """
        try:
            entry = self.stop()
        finally:
            self.save()
        return entry
