"""One synchronization pass over the Echo note queue.

Each pending note is driven through a small state machine:

    PENDING -> CLAIMING -> DOWNLOADING -> PERSISTING -> CONFIRMING -> DONE

and any step after PENDING may end in FAILED instead. Notes are processed
one at a time in the order the server listed them. Server-side claims and
files already written are never rolled back when a later step fails.

With a dry-run store the pass only lists pending notes and reports the
file each would land in; nothing is claimed, downloaded or confirmed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .client import DEFAULT_PAGE_SIZE, Note, NoteQueueClient
from .errors import LocalStoreError
from .notes import BaseNoteStore, NoteContext, note_filename

log = logging.getLogger("echosidian")

ON_ERROR_ABORT = "abort"
ON_ERROR_SKIP = "skip"
ON_ERROR_POLICIES = (ON_ERROR_ABORT, ON_ERROR_SKIP)


class NoteStep(Enum):
    PENDING = "pending"
    CLAIMING = "claiming"
    DOWNLOADING = "downloading"
    PERSISTING = "persisting"
    CONFIRMING = "confirming"
    DONE = "done"
    FAILED = "failed"


@dataclass
class NoteProgress:
    """Where a single note got to during a pass."""

    note: Note
    step: NoteStep = NoteStep.PENDING
    failed_at: Optional[NoteStep] = None
    path: Optional[Path] = None
    error: Optional[Exception] = None

    def advance(self, step: NoteStep) -> None:
        log.debug(f"note {self.note.id}: {self.step.value} -> {step.value}")
        self.step = step

    def fail(self, error: Exception) -> None:
        self.failed_at = self.step
        self.error = error
        self.step = NoteStep.FAILED


@dataclass(frozen=True)
class SyncSession:
    """The client id claims are tagged with and the batch fetched for this pass."""

    client_id: str
    notes: List[Note]


@dataclass
class SyncResult:
    client_id: str
    fetched: int = 0
    notes: List[NoteProgress] = field(default_factory=list)
    dry_run: bool = False

    @property
    def synced(self) -> int:
        return sum(1 for p in self.notes if p.step is NoteStep.DONE)

    @property
    def failed(self) -> List[NoteProgress]:
        return [p for p in self.notes if p.step is NoteStep.FAILED]


class SyncOrchestrator:
    """Drive fetch -> claim -> download -> persist -> confirm over one batch.

    Args:
        client: Queue client bound to the server and token
        store: Local note store
        ctx: Vault the store writes into
        save_folder: Folder (relative to the vault) receiving note files
        client_id: Identifier claims are made under
        page_size: How many pending notes one pass fetches
        on_error: "abort" re-raises the first failure and leaves the rest of
            the batch untouched; "skip" records it and moves on
        transliterate: Convert titles to ASCII before building file names
    """

    def __init__(
        self,
        client: NoteQueueClient,
        store: BaseNoteStore,
        ctx: NoteContext,
        save_folder: str,
        client_id: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_error: str = ON_ERROR_ABORT,
        transliterate: bool = False,
    ) -> None:
        if on_error not in ON_ERROR_POLICIES:
            raise ValueError(f"unknown on_error policy: {on_error!r}")
        self.client = client
        self.store = store
        self.ctx = ctx
        self.save_folder = Path(save_folder)
        self.client_id = client_id
        self.page_size = page_size
        self.on_error = on_error
        self.transliterate = transliterate

    def ensure_folder(self) -> Path:
        # the save folder may be created, the vault itself never is
        if not self.store.validate_connection(self.ctx):
            raise LocalStoreError(self.ctx.vault_path, "vault folder does not exist")
        return self.store.ensure_folder(self.save_folder, self.ctx)

    def start_session(self) -> SyncSession:
        notes = self.client.list_pending(limit=self.page_size, offset=0)
        if len(notes) >= self.page_size:
            log.warning(
                f"fetched a full page of {len(notes)} pending notes; "
                "remaining notes will be picked up by a later pass"
            )
        return SyncSession(client_id=self.client_id, notes=list(notes))

    def relative_path_for(self, note: Note) -> Path:
        return self.save_folder / note_filename(note.title, note.created_date, transliterate=self.transliterate)

    def process_note(self, progress: NoteProgress, client_id: str) -> None:
        """Run one note through claim, download, persist and confirm.

        Exceptions propagate with the progress left at the failing step.
        """
        note = progress.note

        progress.advance(NoteStep.CLAIMING)
        self.client.claim(note.id, client_id)

        progress.advance(NoteStep.DOWNLOADING)
        downloaded = self.client.download(note.id)

        progress.advance(NoteStep.PERSISTING)
        # Title and creation date come from the listing; content from the download
        progress.path = self.store.create_note(downloaded.content or "", self.relative_path_for(note), self.ctx)

        progress.advance(NoteStep.CONFIRMING)
        self.client.confirm(note.id)

        progress.advance(NoteStep.DONE)
        log.info(f"OK note {note.id} -> {progress.path}")

    def preview_note(self, progress: NoteProgress) -> None:
        """Record where a note would be written, without touching the server."""
        progress.path = self.store.create_note("", self.relative_path_for(progress.note), self.ctx)

    def run_pass(self) -> SyncResult:
        """Process one batch of pending notes.

        Returns:
            SyncResult with per-note progress

        Raises:
            Whatever the first failing step raised, unchanged, when the
            policy is "abort".
        """
        self.ensure_folder()
        session = self.start_session()
        result = SyncResult(
            client_id=session.client_id,
            fetched=len(session.notes),
            dry_run=self.store.dry_run,
        )

        if not session.notes:
            log.debug("no pending notes")
            return result

        if result.dry_run:
            for note in session.notes:
                progress = NoteProgress(note=note)
                result.notes.append(progress)
                self.preview_note(progress)
            log.info(f"dry run: {len(session.notes)} pending note(s) left untouched on the server")
            return result

        log.info(f"syncing {len(session.notes)} pending note(s) as {session.client_id}")

        for note in session.notes:
            progress = NoteProgress(note=note)
            result.notes.append(progress)
            try:
                self.process_note(progress, session.client_id)
            except Exception as e:
                failed_step = progress.step
                progress.fail(e)
                if failed_step is NoteStep.CONFIRMING:
                    log.error(
                        f"note {note.id} was written to {progress.path} but delivery was not "
                        "confirmed; the server still holds it as claimed"
                    )
                if self.on_error == ON_ERROR_ABORT:
                    raise
                log.error(f"note {note.id} failed while {failed_step.value}: {e}")

        log.info(f"pass complete: {result.synced} synced, {len(result.failed)} failed")
        return result
