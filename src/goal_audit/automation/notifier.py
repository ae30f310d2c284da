"""Desktop notifications for Goal Audit."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class Notifier:
    """Send desktop notifications."""

    def __init__(self, enabled: bool = True, timeout: int = 5):
        """Initialize notifier.

        Args:
            enabled: Whether notifications are enabled
            timeout: Display duration in seconds
        """
        self.enabled = enabled
        self.timeout = timeout
        self._notifier = self._init_notifier()

    def _init_notifier(self) -> Any:
        """Initialize platform-specific notifier.

        Returns:
            Notification handler or None if not available
        """
        if not self.enabled:
            return None

        try:
            from plyer import notification  # type: ignore[import-not-found]

            return notification  # type: ignore[no-any-return]
        except ImportError:
            logger.info("plyer is not available, desktop notifications disabled")
            return None

    def notify(self, title: str, message: str) -> None:
        """Send a desktop notification.

        Args:
            title: Notification title
            message: Notification message
        """
        if not self.enabled or not self._notifier:
            logger.debug(f"Notification not shown: {title}: {message}")
            return

        try:
            self._notifier.notify(  # type: ignore[attr-defined]
                title=title,
                message=message,
                app_name="Goal Audit",
                timeout=self.timeout,
            )
        except Exception as e:
            # The platform backend may be missing at runtime (no DBus, no tray).
            logger.warning(f"Failed to show notification {title!r}: {e}")
