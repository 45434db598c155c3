"""Typed client for the Echo note queue.

The queue exposes four operations that move a note through its server-side
lifecycle (PENDING -> CLAIMED -> DELIVERED):

    GET  /api/notes?state=PENDING&limit=<n>&offset=<n>
    POST /api/notes/{id}/claim      {"client_id": ...}
    GET  /api/notes/{id}/download
    POST /api/notes/{id}/confirm

Each call is independent and can be retried on its own. Any status other
than 200 raises ApiError; the client does not tell a conflict from a
missing note.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import quote, urlencode

from .errors import ApiError, EchosidianError
from .transport import Response, Transport

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class NoteState(Enum):
    """Server-side lifecycle states of a note."""

    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    DELIVERED = "DELIVERED"


@dataclass(frozen=True)
class Note:
    """One unit of syncable content as returned by the queue."""

    id: str
    vault_id: str
    title: str
    state: NoteState
    created_at: str
    updated_at: str
    external_id: Optional[str] = None
    content: Optional[str] = None  # only populated by download()
    claim_owner: Optional[str] = None
    claim_timestamp: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any, operation: str = "parse") -> "Note":
        """Build a Note from a wire payload.

        Raises:
            ApiError: if the payload is not a note object.
        """
        if not isinstance(data, dict):
            raise ApiError(operation, 200, detail="response is not a note object")

        try:
            note_id = str(data["id"])
            state = NoteState(data.get("state", "PENDING"))
        except KeyError:
            raise ApiError(operation, 200, detail="note without id") from None
        except ValueError:
            raise ApiError(operation, 200, str(data.get("id")), detail=f"unknown state {data.get('state')!r}") from None

        return cls(
            id=note_id,
            vault_id=str(data.get("vault_id") or ""),
            title=data.get("title") or "",
            state=state,
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            external_id=data.get("external_id"),
            content=data.get("content"),
            claim_owner=data.get("claim_owner"),
            claim_timestamp=data.get("claim_timestamp"),
        )

    @property
    def created_date(self) -> str:
        """Calendar date (YYYY-MM-DD) portion of the creation timestamp."""
        raw = self.created_at.strip()
        if not raw:
            return ""
        try:
            # fromisoformat only learned to read a trailing "Z" in 3.11
            parsed = datetime.datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return raw[:10]
        return parsed.date().isoformat()


class NoteQueueClient:
    """Queue operations over an authenticated Transport."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        if not transport.token:
            log.warning("no vault token configured; requests will carry an empty bearer token")

    @staticmethod
    def _note_path(note_id: str, action: str) -> str:
        return f"/api/notes/{quote(str(note_id), safe='')}/{action}"

    @staticmethod
    def _expect_ok(resp: Response, operation: str, note_id: Optional[str] = None) -> Any:
        if resp.status != 200:
            detail = ""
            if isinstance(resp.body, dict):
                detail = str(resp.body.get("detail") or resp.body.get("error") or "")
            raise ApiError(operation, resp.status, note_id, detail=detail)
        return resp.body

    def list_pending(self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> List[Note]:
        """Return one page of notes in PENDING state."""
        query = urlencode({"state": NoteState.PENDING.value, "limit": limit, "offset": offset})
        resp = self.transport.request(f"/api/notes?{query}", method="GET")
        body = self._expect_ok(resp, "list notes")
        if body is None:
            return []
        if not isinstance(body, list):
            raise ApiError("list notes", resp.status, detail="response is not a list")
        return [Note.from_json(item, "list notes") for item in body]

    def claim(self, note_id: str, client_id: str) -> Note:
        """Ask the server for exclusive ownership of a note."""
        resp = self.transport.request(
            self._note_path(note_id, "claim"),
            method="POST",
            body={"client_id": client_id},
            headers={"Content-Type": "application/json"},
        )
        return Note.from_json(self._expect_ok(resp, "claim", note_id), "claim")

    def download(self, note_id: str) -> Note:
        """Fetch a claimed note including its content."""
        resp = self.transport.request(self._note_path(note_id, "download"), method="GET")
        return Note.from_json(self._expect_ok(resp, "download", note_id), "download")

    def confirm(self, note_id: str) -> Note:
        """Mark a note as delivered. Not retried."""
        resp = self.transport.request(self._note_path(note_id, "confirm"), method="POST")
        return Note.from_json(self._expect_ok(resp, "confirm", note_id), "confirm")

    def test_connection(self) -> bool:
        """Return True if the server accepts our token."""
        try:
            resp = self.transport.request("/api/notes", method="GET")
        except EchosidianError as e:
            log.warning(f"connection test failed: {e}")
            return False
        if resp.status != 200:
            log.warning(f"connection test failed: HTTP {resp.status}")
            return False
        return True
