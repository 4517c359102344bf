"""Fetch orchestration: one request, filtered, with tracker bookkeeping."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from core.errors import RemoteProtocolFailure
from core.fetcher import EventSource
from core.tracker import ConditionalFetchTracker
from events.filters import is_tracked_record
from events.models import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of :meth:`EventsRepository.fetch_new_events`."""

    events: tuple[Event, ...] = field(default_factory=tuple)
    next_poll_seconds: int = 0
    not_modified: bool = False


class EventsRepository:
    """Combines an :class:`EventSource` with a :class:`ConditionalFetchTracker`.

    Each instance owns its tracker, so the validation token and advised
    interval live exactly as long as the repository does.  Fetches are
    serialised with an :class:`asyncio.Lock`: the token read, the request
    and the tracker update happen as one unit.
    """

    def __init__(
        self,
        source: EventSource,
        tracker: Optional[ConditionalFetchTracker] = None,
    ) -> None:
        self._source = source
        self._tracker = tracker or ConditionalFetchTracker()
        self._lock = asyncio.Lock()

    async def fetch_new_events(self) -> FetchResult:
        """Fetch, filter and return the events published since the last call.

        Raises :class:`~core.errors.TransportFailure` when the request does
        not complete and :class:`~core.errors.RemoteProtocolFailure` for an
        unexpected status or an undecodable body.
        """
        async with self._lock:
            response = await self._source.fetch(etag=self._tracker.current_token())

            # The advised interval applies whatever the status.
            self._tracker.update_poll_interval(response.headers)
            interval = self._tracker.current_poll_interval()

            if response.status_code == 304:
                logger.info("304 Not Modified (next poll in %ss)", interval)
                return FetchResult(
                    events=(), next_poll_seconds=interval, not_modified=True
                )

            if not 200 <= response.status_code < 300:
                raise RemoteProtocolFailure(
                    f"HTTP {response.status_code} from events endpoint",
                    status=response.status_code,
                )

            events = self._decode(response.content)
            self._tracker.update_token(response.headers)

            logger.info(
                "%d - received %d tracked event(s) (next poll in %ss)",
                response.status_code,
                len(events),
                interval,
            )
            return FetchResult(
                events=events, next_poll_seconds=interval, not_modified=False
            )

    @staticmethod
    def _decode(content: Optional[str]) -> tuple[Event, ...]:
        """Parse *content* as a JSON array and keep only tracked events."""
        if not content:
            return ()
        try:
            records = json.loads(content)
        except json.JSONDecodeError as exc:
            raise RemoteProtocolFailure(f"invalid JSON body: {exc}") from exc
        if not isinstance(records, list):
            raise RemoteProtocolFailure(
                f"expected a JSON array, got {type(records).__name__}"
            )

        events: list[Event] = []
        dropped = 0
        for record in records:
            if not is_tracked_record(record):
                dropped += 1
                continue
            # MalformedEventError is a ValueError.
            try:
                events.append(Event.from_dict(record))
            except (TypeError, AttributeError, ValueError) as exc:
                raise RemoteProtocolFailure(f"malformed event record: {exc}") from exc

        if dropped:
            logger.debug("Dropped %d untracked record(s)", dropped)
        return tuple(events)

    def poll_interval(self) -> int:
        return self._tracker.current_poll_interval()

    def last_etag(self) -> Optional[str]:
        return self._tracker.current_token()

    def reset_etag(self) -> None:
        self._tracker.reset_token()
