"""
Desktop Notifications
=====================

Sends the end-of-run desktop notification.
Uses libnotify (notify-send) on Linux for native notifications.
"""

import subprocess
from typing import Any, Dict, Optional, TYPE_CHECKING
from enum import Enum
from dataclasses import dataclass

from parmove.utils.logging_config import get_logger

if TYPE_CHECKING:
    from parmove.processing.aggregator import RunSummary

logger = get_logger(__name__)


class NotificationType(Enum):
    """Types of notifications."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class NotificationConfig:
    """Notification configuration."""
    enabled: bool = False
    timeout_ms: int = 1000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationConfig":
        """Create NotificationConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            enabled=bool(data.get("enabled", cls.enabled)),
            timeout_ms=int(data.get("timeout_ms", cls.timeout_ms)),
        )


class DesktopNotifier:
    """Sends desktop notifications summarizing a sorting run.

    Uses notify-send on Linux for native notifications.
    """

    APP_NAME = "parmove"

    def __init__(self, config: Optional[NotificationConfig] = None):
        """Initialize the notifier.

        Args:
            config: Notification configuration.
        """
        self.config = config or NotificationConfig()
        self._available: Optional[bool] = None

    def _check_availability(self) -> bool:
        """Check if notification system is available."""
        try:
            result = subprocess.run(
                ["which", "notify-send"],
                capture_output=True,
                timeout=5
            )
            return result.returncode == 0
        except (OSError, subprocess.SubprocessError):
            return False

    @property
    def is_available(self) -> bool:
        """Check if notifications are available and enabled."""
        if not self.config.enabled:
            return False
        if self._available is None:
            self._available = self._check_availability()
            if not self._available:
                logger.warning("Desktop notifications not available (notify-send not found)")
        return self._available

    def _get_icon(self, notif_type: NotificationType) -> str:
        """Get icon for notification type."""
        icons = {
            NotificationType.INFO: "dialog-information",
            NotificationType.SUCCESS: "emblem-ok-symbolic",
            NotificationType.WARNING: "dialog-warning",
            NotificationType.ERROR: "dialog-error",
        }
        return icons.get(notif_type, "folder")

    def _get_urgency(self, notif_type: NotificationType) -> str:
        """Get urgency level for notification type."""
        urgencies = {
            NotificationType.INFO: "low",
            NotificationType.SUCCESS: "normal",
            NotificationType.WARNING: "normal",
            NotificationType.ERROR: "critical",
        }
        return urgencies.get(notif_type, "normal")

    def send(
        self,
        title: str,
        message: str,
        notif_type: NotificationType = NotificationType.INFO
    ) -> bool:
        """Send a desktop notification.

        Args:
            title: Notification title.
            message: Notification body.
            notif_type: Type of notification.

        Returns:
            True if notification was sent successfully.
        """
        if not self.is_available:
            return False

        cmd = [
            "notify-send",
            "--app-name", self.APP_NAME,
            "--icon", self._get_icon(notif_type),
            "--urgency", self._get_urgency(notif_type),
            "--expire-time", str(self.config.timeout_ms),
            title,
            message
        ]

        try:
            subprocess.run(cmd, capture_output=True, timeout=5)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to send notification: {e}")
            return False

        logger.debug(f"Notification sent: {title}")
        return True

    def notify_run_complete(self, summary: "RunSummary") -> bool:
        """Send the single notification for a finished run.

        Args:
            summary: Finalized run summary.

        Returns:
            True if the notification was delivered to notify-send.
        """
        operation = "moving" if summary.mode.value == "move" else "sorting"
        lines = [
            f"{summary.processed} files processed",
            f"{summary.skipped} skipped",
        ]
        if summary.failed:
            lines.append(f"{summary.failed} failed")
            notif_type = NotificationType.WARNING
        else:
            notif_type = NotificationType.SUCCESS

        return self.send(
            f"Finished {operation}",
            "\n".join(lines),
            notif_type,
        )
