"""Error taxonomy shared by the transport, the queue client and the store.

Everything raised during a sync pass derives from EchosidianError so
callers can tell our failures apart from programming errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class EchosidianError(Exception):
    """Base class for all Echosidian errors."""


class TransportError(EchosidianError):
    """No response was received (DNS failure, refused connection, timeout)."""


class ApiError(EchosidianError):
    """The server answered a queue operation with a non-success status."""

    def __init__(self, operation: str, status: int, note_id: Optional[str] = None, detail: str = ""):
        self.operation = operation
        self.status = status
        self.note_id = note_id
        target = f" note {note_id}" if note_id else ""
        message = f"Echo API cannot {operation}{target}: {status}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class LocalStoreError(EchosidianError):
    """Creating a folder or note file in the vault failed."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")


class ConfigError(EchosidianError):
    """A configuration value is missing or malformed."""
