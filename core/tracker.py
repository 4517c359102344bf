"""In-memory conditional-fetch state.

Tracks the last ``ETag`` handed out by the server and the poll interval it
last advised via ``X-Poll-Interval``.  Malformed or missing headers never
raise; they simply leave the stored values alone.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ETAG_HEADER = "ETag"
POLL_INTERVAL_HEADER = "X-Poll-Interval"
DEFAULT_POLL_INTERVAL = 10

_INTEGER_RE = re.compile(r"-?[0-9]+")


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that works on plain dicts too."""
    value = headers.get(name)
    if value is not None:
        return value
    wanted = name.lower()
    for key, candidate in headers.items():
        if key.lower() == wanted:
            return candidate
    return None


class ConditionalFetchTracker:
    """Holds the validation token and advised poll interval.

    Writes are expected from one fetch at a time; the owning
    :class:`~core.repository.EventsRepository` serialises them.
    """

    def __init__(self, default_poll_interval: int = DEFAULT_POLL_INTERVAL) -> None:
        self._token: Optional[str] = None
        self._poll_interval = default_poll_interval

    def current_token(self) -> Optional[str]:
        return self._token

    def current_poll_interval(self) -> int:
        return self._poll_interval

    def update_poll_interval(self, headers: Mapping[str, str]) -> bool:
        """Adopt ``X-Poll-Interval`` from *headers* if it is an integer."""
        raw = _header(headers, POLL_INTERVAL_HEADER)
        if raw is None:
            return False
        value = str(raw).strip()
        if not _INTEGER_RE.fullmatch(value):
            logger.debug("Ignoring malformed %s header %r", POLL_INTERVAL_HEADER, raw)
            return False
        interval = int(value)
        if interval != self._poll_interval:
            logger.debug(
                "Poll interval changed %ss -> %ss", self._poll_interval, interval
            )
        self._poll_interval = interval
        return True

    def update_token(self, headers: Mapping[str, str]) -> bool:
        """Adopt ``ETag`` from *headers* unless it is missing or blank."""
        raw = _header(headers, ETAG_HEADER)
        if raw is None or not raw.strip():
            return False
        self._token = raw
        logger.debug("Stored validation token %s", raw)
        return True

    def update(self, headers: Mapping[str, str]) -> None:
        """Apply both the poll-interval and validation-token headers."""
        self.update_poll_interval(headers)
        self.update_token(headers)

    def reset_token(self) -> None:
        """Forget the validation token so the next fetch is unconditional."""
        self._token = None
