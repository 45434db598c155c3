"""Shared fixtures: an in-memory Echo server and a transport that talks to it."""

from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest

from echosidian.config import EchoConfig
from echosidian.transport import Response, Transport


def make_note(note_id, title="Note", created_at="2024-03-05T10:00:00Z", content="body", state="PENDING"):
    return {
        "id": note_id,
        "vault_id": "vault-1",
        "title": title,
        "content": content,
        "state": state,
        "created_at": created_at,
        "updated_at": created_at,
    }


class FakeEchoServer:
    """Enough of the Echo note queue to exercise a client end to end.

    `fail` maps (operation, note_id) to a status code to answer with
    instead of the normal behaviour, e.g. {("claim", "n2"): 409}.
    With `stale_listing` the PENDING listing lags behind and still shows
    notes that were claimed but never confirmed.
    """

    def __init__(self, notes=(), token="secret", stale_listing=False):
        self.stale_listing = stale_listing
        self.notes = {n["id"]: dict(n) for n in notes}
        self.order = [n["id"] for n in notes]
        self.token = token
        self.fail = {}
        self.requests = []

    def add(self, note):
        self.notes[note["id"]] = dict(note)
        self.order.append(note["id"])

    def listing(self, note):
        # the list endpoint does not ship content
        return {k: v for k, v in note.items() if k != "content"}

    def handle(self, method, url, body, headers):
        self.requests.append({"method": method, "url": url, "body": body, "headers": headers})
        parts = urlsplit(url)
        segments = [s for s in parts.path.split("/") if s]

        if segments == ["api", "notes"] and method == "GET":
            if ("list", None) in self.fail:
                return Response(self.fail[("list", None)], {"detail": "boom"})
            query = parse_qs(parts.query)
            state = query.get("state", [None])[0]
            limit = int(query.get("limit", ["1000"])[0])
            offset = int(query.get("offset", ["0"])[0])
            states = {state, "CLAIMED"} if self.stale_listing and state == "PENDING" else {state}
            notes = [self.notes[i] for i in self.order if state is None or self.notes[i]["state"] in states]
            return Response(200, [self.listing(n) for n in notes[offset:offset + limit]])

        note_id, action = segments[2], segments[3]
        if (action, note_id) in self.fail:
            return Response(self.fail[(action, note_id)], {"detail": "injected"})
        note = self.notes.get(note_id)
        if note is None:
            return Response(404, {"detail": "not found"})

        if action == "claim":
            if note["state"] != "PENDING":
                return Response(409, {"detail": "already claimed"})
            note.update(state="CLAIMED", claim_owner=body["client_id"], claim_timestamp="2024-03-05T10:05:00Z")
            return Response(200, self.listing(note))
        if action == "download":
            if note["state"] != "CLAIMED":
                return Response(403, {"detail": "not claimed"})
            return Response(200, dict(note))
        if action == "confirm":
            if note["state"] != "CLAIMED":
                return Response(409, {"detail": "not claimed"})
            note.update(state="DELIVERED")
            return Response(200, self.listing(note))
        return Response(404, None)


class FakeTransport(Transport):
    """Transport routing requests to a FakeEchoServer instead of the network."""

    def __init__(self, server, base_url="https://echo.test", token="secret"):
        super().__init__(base_url, token)
        self.server = server

    def request(self, endpoint, method="GET", body=None, headers=None):
        return self.server.handle(method, self.url_for(endpoint), body, self.build_headers(headers))


@pytest.fixture
def server():
    return FakeEchoServer()


@pytest.fixture
def config(tmp_path):
    vault = tmp_path / "vault"
    vault.mkdir()
    return EchoConfig(
        api_url="https://echo.test",
        vault_token="secret",
        save_folder="Echo",
        vault_path=vault,
    )


@pytest.fixture
def settings_path(tmp_path) -> Path:
    return tmp_path / "settings.json"


ENV_KEYS = (
    "ECHOSIDIAN_API_URL",
    "ECHOSIDIAN_VAULT_TOKEN",
    "ECHOSIDIAN_SAVE_FOLDER",
    "ECHOSIDIAN_VAULT_PATH",
    "ECHOSIDIAN_CLIENT_ID",
    "ECHOSIDIAN_PAGE_SIZE",
    "ECHOSIDIAN_REQUEST_TIMEOUT",
    "ECHOSIDIAN_SYNC_INTERVAL_MINUTES",
    "ECHOSIDIAN_STARTUP_DELAY_SECONDS",
    "ECHOSIDIAN_ON_ERROR",
    "ECHOSIDIAN_TRANSLITERATE_TITLES",
    "ECHOSIDIAN_SETTINGS_PATH",
    "ECHOSIDIAN_HEALTHCHECK_URL",
    "ECHOSIDIAN_NOTIFICATION_PROVIDERS",
    "ECHOSIDIAN_WEBHOOK_URL",
    "ECHOSIDIAN_WEBHOOK_INCLUDE_ERRORS",
    "ECHOSIDIAN_NOTE_PROVIDER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # set-then-delete so values loaded from a .env during a test are undone too
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
