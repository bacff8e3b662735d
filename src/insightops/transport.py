"""HTTP transport used by the delivery loop.

A transport performs exactly one POST and raises on any failure. It never
retries or inspects status codes beyond success/failure; that is the delivery
loop's concern.

The default transport uses `requests` executed in a thread so the event loop is
never blocked on network I/O.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Protocol

import requests  # type: ignore

from .errors import TransportError

DEFAULT_TIMEOUT = 30.0

# The ingestion endpoint historically receives `ContentType`; `Content-Type` is opt-in.
CONTENT_TYPE_HEADER = "ContentType"
STANDARD_CONTENT_TYPE_HEADER = "Content-Type"


class PostHandler(Protocol):
    """Performs one HTTP POST; raises on transport errors or non-2xx responses."""

    async def __call__(self, url: str, *, headers: Mapping[str, str], body: str) -> None: ...


async def requests_post(
    url: str,
    *,
    headers: Mapping[str, str],
    body: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """POST `body` to `url`.

    Raises:
    - `TransportError` for non-2xx responses
    - `requests.RequestException` for transport errors
    """

    def _do_request() -> None:
        """Execute the HTTP request synchronously (runs in a worker thread)."""
        resp = requests.post(url, headers=dict(headers), data=body.encode("utf-8"), timeout=timeout)
        if 200 <= resp.status_code < 300:
            return
        try:
            text: str | None = resp.text[:256]
        except Exception:  # noqa: BLE001 - best-effort snippet
            text = None
        raise TransportError(status_code=resp.status_code, body=text)

    await asyncio.to_thread(_do_request)


def make_requests_post(timeout: float = DEFAULT_TIMEOUT) -> PostHandler:
    """Return the default transport bound to a request timeout."""

    async def _post(url: str, *, headers: Mapping[str, str], body: str) -> None:
        await requests_post(url, headers=headers, body=body, timeout=timeout)

    return _post
