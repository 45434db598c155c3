"""Filesystem note store writing into an Obsidian vault."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import LocalStoreError
from .base import BaseNoteStore, NoteContext

log = logging.getLogger(__name__)


class VaultNoteStore(BaseNoteStore):
    """Note store for a vault on the local filesystem.

    Notes are written as plain Markdown with no front matter:

        Vault/
        └── Echo/
            ├── 2024-03-05 Hello World.md
            └── 2024-03-06 Groceries.md
    """

    name: str = "vault"

    def ensure_folder(self, folder: Path, ctx: NoteContext) -> Path:
        target = ctx.vault_path / folder
        if target.is_dir():
            return target
        if target.exists():
            raise LocalStoreError(target, "save folder path is not a directory")
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalStoreError(target, f"cannot create folder ({e.strerror or e})") from e
        log.info(f"created folder {target}")
        return target

    def exists(self, relative_path: Path, ctx: NoteContext) -> bool:
        return (ctx.vault_path / relative_path).exists()

    def create_note(self, content: str, relative_path: Path, ctx: NoteContext) -> Path:
        md_path = ctx.vault_path / relative_path
        try:
            # "x" refuses to clobber a file that is already there
            with md_path.open("x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError as e:
            raise LocalStoreError(md_path, "note file already exists") from e
        except OSError as e:
            raise LocalStoreError(md_path, f"cannot write note ({e.strerror or e})") from e
        return md_path
