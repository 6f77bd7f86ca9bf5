"""
JSON-over-HTTP transport shared by every provider.

One POST per call, run in a worker thread via asyncio.to_thread + stdlib
urllib so the event loop never blocks. Vendors report errors with a 4xx/5xx
status *and* a JSON body; that body is returned to the caller unchanged so
the provider's own parser can turn it into a VendorError.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any

from aipim.providers.base import TransportError

logger = logging.getLogger(__name__)

_USER_AGENT = "aipim/0.2"


class HttpTransport:
    """Stateless JSON POST client. Safe to share between providers."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        provider: str,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        POST `payload` as JSON and return the decoded JSON body.

        Raises:
            TransportError: the connection failed, timed out, or the body was not JSON.
        """
        body = json.dumps(payload).encode("utf-8")
        req_headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": _USER_AGENT,
        }
        if headers:
            req_headers.update(headers)

        def _do() -> tuple[int, bytes]:
            req = urllib.request.Request(url, data=body, headers=req_headers, method="POST")
            try:
                if self._timeout is None:
                    resp = urllib.request.urlopen(req)
                else:
                    resp = urllib.request.urlopen(req, timeout=self._timeout)
                with resp:
                    return resp.status, resp.read()
            except urllib.error.HTTPError as exc:
                # Error statuses still carry the vendor's JSON error envelope.
                return exc.code, exc.read()

        try:
            status, raw = await asyncio.to_thread(_do)
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as exc:
            raise TransportError(provider, f"request failed: {exc}", cause=exc) from exc

        logger.debug("POST %s -> HTTP %d (%d bytes)", _redact(url), status, len(raw))
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TransportError(
                provider,
                f"HTTP {status}: response body is not JSON: {raw[:200]!r}",
                cause=exc,
            ) from exc


def _redact(url: str) -> str:
    """Hide a `key=` query parameter so API keys never reach the log file."""
    head, sep, query = url.partition("?")
    if not sep:
        return url
    parts = [
        "key=***" if p.startswith("key=") else p
        for p in query.split("&")
    ]
    return f"{head}?{'&'.join(parts)}"
