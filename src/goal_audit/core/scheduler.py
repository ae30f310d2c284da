"""Time source and deferred callbacks used by the tracker."""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current local wall-clock time."""
    return datetime.now()


class Scheduler(ABC):
    """Runs a single callback after a delay.

    Arming again replaces the pending callback; there is never more than one.
    """

    @abstractmethod
    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        """Schedule callback to run after delay seconds.

        Args:
            delay: Seconds to wait
            callback: Function to call
        """
        pass

    @abstractmethod
    def disarm(self) -> None:
        """Cancel the pending callback, if any."""
        pass

    @property
    @abstractmethod
    def armed(self) -> bool:
        """Whether a callback is pending."""
        pass


class ThreadingScheduler(Scheduler):
    """Scheduler backed by a daemon ``threading.Timer``."""

    def __init__(self) -> None:
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()

            timer = threading.Timer(delay, self._fire, args=(callback,))
            timer.daemon = True
            self._timer = timer
            timer.start()
        logger.debug(f"Idle timer armed for {delay}s")

    def _fire(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._timer is not threading.current_thread():
                # Re-armed or disarmed after this timer's wait ended.
                logger.debug("Superseded idle timer fired, ignoring")
                return
            self._timer = None
        callback()

    def disarm(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                logger.debug("Idle timer disarmed")

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None
