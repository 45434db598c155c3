"""Dry-run note store: reports where notes would go and writes nothing."""

from __future__ import annotations

import logging
from pathlib import Path

from .base import BaseNoteStore, NoteContext

log = logging.getLogger(__name__)


class NoopNoteStore(BaseNoteStore):
    """Store that touches neither the vault nor the server queue.

    The orchestrator checks `dry_run` and only lists pending notes, so a
    dry run never claims or confirms anything.
    """

    name: str = "noop"
    dry_run: bool = True

    def ensure_folder(self, folder: Path, ctx: NoteContext) -> Path:
        return ctx.vault_path / folder

    def exists(self, relative_path: Path, ctx: NoteContext) -> bool:
        return False

    def create_note(self, content: str, relative_path: Path, ctx: NoteContext) -> Path:
        md_path = ctx.vault_path / relative_path
        log.info(f"dry run: would write {md_path}")
        return md_path

    def validate_connection(self, ctx: NoteContext) -> bool:
        return True
