"""Webhook notification provider for Echosidian.

This provider sends JSON POST requests to a configured webhook URL.
Works with any service that accepts JSON webhooks (ntfy.sh, custom
endpoints, etc.).
"""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.request

from .base import BaseNotificationProvider, NotificationContext, NotificationPayload

log = logging.getLogger("echosidian")


class WebhookProvider(BaseNotificationProvider):
    """Generic webhook notification provider.

    Configuration:
        ECHOSIDIAN_WEBHOOK_URL: The webhook endpoint URL (required)
        ECHOSIDIAN_WEBHOOK_TOPIC: Optional topic/title for the notification
        ECHOSIDIAN_WEBHOOK_TIMEOUT: Request timeout in seconds (default: 5)
        ECHOSIDIAN_WEBHOOK_INCLUDE_ERRORS: Set to 1 to forward raw error text
            (server responses, file paths); off by default
    """

    name: str = "webhook"

    def __init__(self) -> None:
        """Initialize webhook provider from environment variables."""
        self.url = os.environ.get("ECHOSIDIAN_WEBHOOK_URL", "").strip()
        self.topic = os.environ.get("ECHOSIDIAN_WEBHOOK_TOPIC", "").strip()
        try:
            self.timeout = int(os.environ.get("ECHOSIDIAN_WEBHOOK_TIMEOUT", "5"))
        except ValueError:
            self.timeout = 5
        self.include_errors = os.environ.get("ECHOSIDIAN_WEBHOOK_INCLUDE_ERRORS", "0").strip() == "1"

    def build_payload(self, payload: NotificationPayload, ctx: NotificationContext) -> dict:
        data = {
            "vault": payload.vault_name,
            "trigger": ctx.trigger,
            "timestamp": payload.timestamp,
            "severity": payload.severity.value,
            "fetched": payload.fetched,
            "synced": payload.synced,
            "failed": payload.failed,
            "title": f"Echosidian: {payload.vault_name}",
            "message": self.format_message(payload),
        }
        if self.include_errors and payload.error:
            data["error"] = payload.error
        if self.topic:
            data["topic"] = self.topic
        return data

    def send(
        self,
        payload: NotificationPayload,
        ctx: NotificationContext,
    ) -> bool:
        """Send notification via webhook.

        Returns:
            True if webhook returned 2xx status, False otherwise
        """
        if not self.url:
            # No webhook URL configured, silently skip
            return False

        encoded = json.dumps(self.build_payload(payload, ctx)).encode("utf-8")
        req = urllib.request.Request(
            self.url,
            data=encoded,
            headers={"Content-Type": "application/json"},
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = getattr(resp, "status", 200)
                success = 200 <= status < 300
                if success:
                    log.info(f"notification sent (status={status})")
                else:
                    log.warning(f"webhook returned non-2xx status: {status}")
                return success
        except urllib.error.HTTPError as e:
            log.warning(f"failed to send notification: HTTP {e.code} {e.reason}")
            return False
        except urllib.error.URLError as e:
            log.warning(f"failed to send notification: {e.reason}")
            return False
        except Exception as e:
            log.warning(f"failed to send notification to {self.url}: {e}")
            return False
