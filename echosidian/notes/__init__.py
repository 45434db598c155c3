"""Note store registry for Echosidian.

This module wires together the base store interface and concrete
implementations so that echosidian.py can resolve a configured store
name into a store instance.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, Optional

from .base import BaseNoteStore, NoteContext
from ..errors import ConfigError
from .naming import note_filename, sanitize_title
from .noop import NoopNoteStore
from .vault import VaultNoteStore

_PROVIDER_FACTORIES: Dict[str, Callable[[], BaseNoteStore]] = {}


def _register_defaults() -> None:
    """Populate the registry with built-in stores."""

    if _PROVIDER_FACTORIES:
        return

    _PROVIDER_FACTORIES["vault"] = lambda: VaultNoteStore()
    _PROVIDER_FACTORIES["noop"] = lambda: NoopNoteStore()


def get_provider(name: Optional[str]) -> BaseNoteStore:
    """Return a note store for the given name.

    None and empty names resolve to the "vault" store.

    Raises:
        ConfigError: if the name is not a registered store
    """

    _register_defaults()

    key = (name or "vault").strip().lower() or "vault"
    factory = _PROVIDER_FACTORIES.get(key)
    if factory is None:
        known = ", ".join(sorted(_PROVIDER_FACTORIES))
        raise ConfigError(f"unknown note store {name!r} (expected one of: {known})")
    return factory()


def provider_from_env() -> BaseNoteStore:
    """Resolve a store based on ECHOSIDIAN_NOTE_PROVIDER."""

    name = os.environ.get("ECHOSIDIAN_NOTE_PROVIDER", "").strip() or None
    return get_provider(name)


__all__ = [
    "BaseNoteStore",
    "NoopNoteStore",
    "NoteContext",
    "VaultNoteStore",
    "get_provider",
    "note_filename",
    "provider_from_env",
    "sanitize_title",
]
