"""Base note store interface for Echosidian.

A note store is the local side of a sync pass: it makes sure the target
folder exists, tells whether a file is already there and creates new note
files. Stores never overwrite; an existing file is a LocalStoreError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class NoteContext:
    """Which vault a store is operating on."""

    vault_path: Path
    vault_name: str  # Just the vault folder name (e.g., "Personal")


class BaseNoteStore(ABC):
    """Abstract base class for note stores.

    All paths handed to a store are relative to the vault root.
    """

    name: str = "base"
    # A dry-run store must not cause server-side claims or confirms
    dry_run: bool = False

    @abstractmethod
    def ensure_folder(self, folder: Path, ctx: NoteContext) -> Path:
        """Create `folder` (and parents) if it does not exist yet.

        Calling this repeatedly is always safe.

        Returns:
            Absolute path to the folder

        Raises:
            LocalStoreError: if the folder cannot be created
        """
        raise NotImplementedError

    @abstractmethod
    def exists(self, relative_path: Path, ctx: NoteContext) -> bool:
        """Return True if something already lives at `relative_path`."""
        raise NotImplementedError

    @abstractmethod
    def create_note(self, content: str, relative_path: Path, ctx: NoteContext) -> Path:
        """Create a new note file holding `content` verbatim.

        Returns:
            Absolute path to the written file

        Raises:
            LocalStoreError: if the file already exists or cannot be written
        """
        raise NotImplementedError

    def validate_connection(self, ctx: NoteContext) -> bool:
        """Return True if the vault root exists.

        Checked before every pass and by the test-connection command.
        """
        return ctx.vault_path.exists()
