"""Notification provider registry for Echosidian.

This module wires together the base provider interface and concrete
implementations (console, webhook) so that echosidian.py can resolve
configured provider names into provider instances.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, List, Optional

from .base import (
    BaseNotificationProvider,
    NoopNotificationProvider,
    NotificationContext,
    NotificationPayload,
    NotificationSeverity,
)
from .console import ConsoleProvider
from .webhook import WebhookProvider

_PROVIDER_FACTORIES: Dict[str, Callable[[], BaseNotificationProvider]] = {}

DEFAULT_PROVIDERS = "console"


def _register_defaults() -> None:
    """Populate the provider registry with built-in providers."""
    if _PROVIDER_FACTORIES:
        return

    _PROVIDER_FACTORIES["noop"] = lambda: NoopNotificationProvider()
    _PROVIDER_FACTORIES["console"] = lambda: ConsoleProvider()
    _PROVIDER_FACTORIES["webhook"] = lambda: WebhookProvider()


def get_provider(name: Optional[str]) -> BaseNotificationProvider:
    """Return a notification provider instance for the given name.

    If the name is None, empty, or unknown, returns NoopNotificationProvider.
    """
    _register_defaults()

    if not name:
        return NoopNotificationProvider()

    factory = _PROVIDER_FACTORIES.get(name.strip().lower())
    if factory is None:
        return NoopNotificationProvider()

    return factory()


def get_providers(names: Optional[str]) -> List[BaseNotificationProvider]:
    """Get multiple notification providers from comma-separated names.

    For example: "console,webhook" returns a list of two providers.
    """
    if not names:
        return []

    provider_list = []
    for name in names.split(","):
        name = name.strip()
        if name:
            provider = get_provider(name)
            # Only add if it's not a noop (unless explicitly requested)
            if name.lower() == "noop" or not isinstance(provider, NoopNotificationProvider):
                provider_list.append(provider)

    return provider_list


def providers_from_env() -> List[BaseNotificationProvider]:
    """Resolve notification providers from ECHOSIDIAN_NOTIFICATION_PROVIDERS.

    Defaults to the console provider. When the variable is unset but
    ECHOSIDIAN_WEBHOOK_URL is, the webhook provider is added as well.
    """
    names = os.environ.get("ECHOSIDIAN_NOTIFICATION_PROVIDERS", "").strip()
    if names:
        return get_providers(names)

    if os.environ.get("ECHOSIDIAN_WEBHOOK_URL", "").strip():
        return get_providers(f"{DEFAULT_PROVIDERS},webhook")

    return get_providers(DEFAULT_PROVIDERS)


__all__ = [
    "BaseNotificationProvider",
    "ConsoleProvider",
    "NoopNotificationProvider",
    "NotificationContext",
    "NotificationPayload",
    "NotificationSeverity",
    "WebhookProvider",
    "get_provider",
    "get_providers",
    "providers_from_env",
]
