"""Authenticated HTTP transport for the Echo API.

A Transport performs exactly one HTTP call per `request()`. It attaches
the vault token as a bearer credential and hands back whatever the server
said, success or not. Only a missing response (network down, DNS, timeout)
is raised, as TransportError; checking the status is the caller's job.
"""

from __future__ import annotations

import json
import logging
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import TransportError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    """Status code and parsed body of an HTTP answer."""

    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _parse_body(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


class Transport:
    """Issue bearer-authenticated requests against a base URL.

    Args:
        base_url: Server root, e.g. "https://echo.yourhost.com"
        token: Vault token; an empty token is still sent as "Bearer "
        timeout: Per-request timeout in seconds
    """

    def __init__(self, base_url: str, token: Optional[str] = "", timeout: float = 30) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token = token or ""
        self.timeout = timeout

    def url_for(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url}{endpoint}"

    def build_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        merged: Dict[str, str] = dict(headers or {})
        merged["Authorization"] = f"Bearer {self.token}"
        return merged

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        """Send one request and return the server's answer.

        Dict and list bodies are JSON-encoded; strings are sent as UTF-8.
        Caller headers are merged first so the Authorization header always
        carries the configured token.

        Raises:
            TransportError: if no HTTP response was received at all.
        """
        url = self.url_for(endpoint)

        data: Optional[bytes] = None
        if body is not None:
            if isinstance(body, (bytes, bytearray)):
                data = bytes(body)
            elif isinstance(body, str):
                data = body.encode("utf-8")
            else:
                data = json.dumps(body).encode("utf-8")

        req = urllib.request.Request(url, data=data, headers=self.build_headers(headers), method=method)
        log.debug(f"{method} {url}")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = getattr(resp, "status", 200)
                return Response(status=status, body=_parse_body(resp.read()))
        except urllib.error.HTTPError as e:
            # urllib raises for 4xx/5xx; the server did answer, so hand it back
            try:
                raw = e.read()
            except OSError:
                raw = b""
            return Response(status=e.code, body=_parse_body(raw))
        except urllib.error.URLError as e:
            raise TransportError(f"{method} {url} failed: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise TransportError(f"{method} {url} timed out after {self.timeout}s") from e
        except OSError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
