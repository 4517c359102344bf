"""Async HTTP event source with conditional-request support.

Uses ``aiohttp`` to fetch the public events endpoint.  Sending the last
``ETag`` as ``If-None-Match`` lets the server answer ``304 Not Modified``
when nothing changed, which does not count against the rate limit and
carries no body.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

import aiohttp

from core.errors import TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com/"
DEFAULT_ACCEPT = "application/vnd.github.v3+json"
DEFAULT_USER_AGENT = "GitHub-Events-Python"
DEFAULT_TIMEOUT_SECONDS = 30.0

_EVENTS_PATH = "events"


@dataclass
class SourceResponse:
    """Raw outcome of one request to the events endpoint."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: Optional[str] = None


class EventSource:
    """Performs single requests against ``GET /events``.

    Parameters
    ----------
    session:
        A :class:`aiohttp.ClientSession` owned by the caller.
    base_url:
        API root; ``events`` is appended to it.
    token:
        Optional secret sent as ``Authorization: token <secret>``.
    timeout_seconds:
        Applied separately to connecting and to each socket read.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        accept: str = DEFAULT_ACCEPT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._url = base_url.rstrip("/") + "/" + _EVENTS_PATH
        self._timeout = aiohttp.ClientTimeout(
            total=None, connect=timeout_seconds, sock_read=timeout_seconds
        )
        self._base_headers: dict[str, str] = {
            "Accept": accept,
            "User-Agent": user_agent,
        }
        if token and token.strip():
            self._base_headers["Authorization"] = f"token {token.strip()}"

    @property
    def url(self) -> str:
        return self._url

    async def fetch(self, etag: Optional[str] = None) -> SourceResponse:
        """Request the events list, sending *etag* as ``If-None-Match``.

        Returns a :class:`SourceResponse` for any HTTP status; a ``304``
        carries ``content=None``.  Raises :class:`TransportFailure` when no
        response could be obtained.
        """
        headers = dict(self._base_headers)
        if etag is not None:
            headers["If-None-Match"] = etag

        try:
            async with self._session.get(
                self._url, headers=headers, timeout=self._timeout
            ) as response:
                if response.status == 304:
                    return SourceResponse(
                        status_code=304,
                        headers=response.headers,
                        content=None,
                    )

                body = await response.text()
                return SourceResponse(
                    status_code=response.status,
                    headers=response.headers,
                    content=body,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Request to %s failed: %r", self._url, exc)
            raise TransportFailure(
                f"request to {self._url} failed: {str(exc) or type(exc).__name__}"
            ) from exc
