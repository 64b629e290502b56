"""Blocking urllib transport shared by the Gemini and backend HTTP adapters."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


@dataclass(frozen=True)
class HttpResponse:
    """Status code and raw body of one HTTP exchange; non-2xx is not an error here."""

    status_code: int
    body_bytes: bytes


class HttpTransportPort(Protocol):
    """Async transport used by the HTTP adapters."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> HttpResponse:
        """Send one request and return the response, whatever its status."""


class HttpTransportError(RuntimeError):
    """Raised when no HTTP response could be obtained at all."""


class UrllibHttpTransport:
    """Runs urllib in a worker thread so the event loop keeps serving events."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> HttpResponse:
        request = Request(url=url, data=body, headers=headers, method=method)
        return await asyncio.to_thread(_send, request, timeout_seconds)


def _send(request: Request, timeout_seconds: float) -> HttpResponse:
    try:
        with urlopen(request, timeout=timeout_seconds) as response:
            return HttpResponse(status_code=int(response.getcode()), body_bytes=response.read())
    except HTTPError as error:
        return HttpResponse(status_code=int(error.code), body_bytes=error.read())
    except URLError as error:
        raise HttpTransportError(f"connection failure: {error.reason}") from error


def preview_body(payload: bytes, *, limit: int = 200) -> str:
    """Return a short printable excerpt of a response body for error messages."""

    if not payload:
        return "empty response body"
    try:
        return payload.decode("utf-8")[:limit]
    except UnicodeDecodeError:
        return "<binary>"
