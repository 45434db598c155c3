"""Base notification provider interface for Echosidian.

This module defines the abstract interface that all notification providers
must implement, along with the payload describing a finished sync pass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NotificationSeverity(Enum):
    """Notification severity levels."""

    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class NotificationPayload:
    """Outcome of one sync pass as shown to the user.

    `error` carries the diagnostic text for providers that forward it to
    machines (webhooks); the human-facing message stays generic.
    """

    vault_name: str
    severity: NotificationSeverity
    timestamp: str

    fetched: int = 0
    synced: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def has_errors(self) -> bool:
        return self.severity is NotificationSeverity.ERROR


@dataclass(frozen=True)
class NotificationContext:
    """What triggered the pass ("manual", "timer" or "startup")."""

    trigger: str


class BaseNotificationProvider(ABC):
    """Abstract base class for notification providers.

    Providers should never raise exceptions - log errors and return False
    instead so that a notification failure never breaks a sync pass.
    """

    name: str = "base"

    @abstractmethod
    def send(
        self,
        payload: NotificationPayload,
        ctx: NotificationContext,
    ) -> bool:
        """Send a notification.

        Returns:
            True if notification was sent successfully, False otherwise.
        """
        raise NotImplementedError

    def format_message(self, payload: NotificationPayload) -> str:
        """Format the user-visible message for a pass.

        Failures get one generic line; the details live in the log file.
        """
        if payload.has_errors:
            return "Echosidian: Error syncing notes"
        message = f"Echosidian: synced {payload.synced} note(s) into {payload.vault_name}"
        if payload.failed:
            message += f", {payload.failed} failed"
        return message


class NoopNotificationProvider(BaseNotificationProvider):
    """A provider that sends no notifications."""

    name: str = "noop"

    def send(
        self,
        payload: NotificationPayload,
        ctx: NotificationContext,
    ) -> bool:
        """Silently succeed without sending any notification."""
        return True
