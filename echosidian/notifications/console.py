"""Console notification provider: prints one line per reported pass."""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from .base import BaseNotificationProvider, NotificationContext, NotificationPayload

log = logging.getLogger("echosidian")


class ConsoleProvider(BaseNotificationProvider):
    """Print notifications to the terminal running Echosidian.

    Errors go to stderr, everything else to stdout.
    """

    name: str = "console"

    def __init__(self, stream: Optional[TextIO] = None, error_stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self._error_stream = error_stream

    def send(
        self,
        payload: NotificationPayload,
        ctx: NotificationContext,
    ) -> bool:
        if payload.has_errors:
            stream = self._error_stream or sys.stderr
        else:
            stream = self._stream or sys.stdout
        try:
            print(self.format_message(payload), file=stream, flush=True)
        except (OSError, ValueError) as e:
            log.warning(f"failed to print notification: {e}")
            return False
        return True
