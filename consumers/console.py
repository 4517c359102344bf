"""Console consumer: renders engine snapshots as a text feed on stdout."""

from __future__ import annotations

import abc
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from core.engine import Empty, EngineSnapshot, Error, Loading, Success, UIState
from events.filters import (
    EventFilterType,
    build_profile_url,
    build_repo_url,
    filter_events,
    format_branch_name,
    format_commit_count,
    format_event_type,
    format_relative_time,
)

if TYPE_CHECKING:
    from events.bus import StateBus
    from events.models import Event

logger = logging.getLogger(__name__)


class Consumer(abc.ABC):
    """Abstract base class that every snapshot consumer must implement."""

    @abc.abstractmethod
    async def start(self) -> None:
        """Begin consuming snapshots.  Runs until :meth:`stop` is called."""

    @abc.abstractmethod
    async def stop(self) -> None:
        """Signal the consumer to shut down gracefully."""


class ConsoleConsumer(Consumer):
    """Subscribes to a :class:`StateBus` and prints the feed on state changes.

    Countdown ticks and refreshing toggles do not reprint the feed; they
    are only logged at debug level.

    Parameters
    ----------
    state_bus:
        The bus the engine publishes snapshots to.
    selected:
        Event type to show.
    query:
        Case-insensitive search over actor, repository and type.
    """

    _SEPARATOR = "-" * 40

    def __init__(
        self,
        state_bus: StateBus[EngineSnapshot],
        selected: EventFilterType = EventFilterType.ALL,
        query: str = "",
    ) -> None:
        self._state_bus = state_bus
        self._selected = selected
        self._query = query
        self._running: bool = False
        self._last_key: Optional[tuple] = None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the bus and print the feed until stopped."""
        self._running = True
        logger.info("ConsoleConsumer started — waiting for snapshots")

        async for snapshot in self._state_bus.subscribe():
            if not self._running:
                break
            rendered = self.render(snapshot)
            if rendered is not None:
                print(rendered)

        logger.info("ConsoleConsumer stopped")

    async def stop(self) -> None:
        """Signal the consumer loop to exit after the current snapshot."""
        logger.info("ConsoleConsumer stopping")
        self._running = False

    def render(self, snapshot: EngineSnapshot) -> Optional[str]:
        """Return the text for *snapshot*, or ``None`` if nothing changed."""
        logger.debug(
            "Snapshot: refreshing=%s countdown=%s",
            snapshot.is_refreshing,
            snapshot.countdown,
        )
        key = self._state_key(snapshot.ui_state)
        if key == self._last_key:
            return None
        self._last_key = key
        return self._format_state(snapshot.ui_state, snapshot.next_poll)

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _state_key(state: UIState) -> tuple:
        # Event equality is by id only; a replaced event must still reprint.
        if isinstance(state, Success):
            return (
                Success,
                tuple(
                    (e.id, e.type, e.created_at, e.public, e.actor, e.repo, e.payload)
                    for e in state.events
                ),
            )
        return (type(state), state)

    def _format_state(self, state: UIState, next_poll: int) -> str:
        if isinstance(state, Loading):
            return "Loading events…"
        if isinstance(state, Empty):
            return "No events yet. Try again in a few seconds."
        if isinstance(state, Error):
            return f"[ERROR] {state.message}"
        if not isinstance(state, Success):
            raise TypeError(f"unknown UI state {state!r}")

        shown = filter_events(state.events, self._selected, self._query)
        header = (
            f"{len(shown)} of {len(state.events)} event(s) "
            f"(next refresh in ~{next_poll}s)"
        )
        blocks = [self._format_event(event) for event in shown]
        return "\n".join([header, self._SEPARATOR, *blocks])

    @staticmethod
    def _format_event(event: Event, now: Optional[datetime] = None) -> str:
        """Return a human-readable block for *event*.

        Example output::

            [3m ago] Push by octocat
            Actor: https://github.com/octocat
            Repo: octocat/hello-world (https://github.com/octocat/hello-world)
            Branch: main, 2 commits
            ----------------------------------------
        """
        when = format_relative_time(event.created_at, now=now)
        lines = [
            f"[{when}] {format_event_type(event.type)} by {event.actor.login}",
            f"Actor: {build_profile_url(event.actor.login)}",
            f"Repo: {event.repo.name} ({build_repo_url(event.repo.name)})",
        ]

        payload = event.payload
        if payload is not None:
            details: list[str] = []
            if payload.ref:
                details.append(f"Branch: {format_branch_name(payload.ref)}")
            if payload.commits:
                details.append(format_commit_count(len(payload.commits)))
            if payload.action:
                details.append(f"Action: {payload.action}")
            if details:
                lines.append(", ".join(details))

        lines.append(ConsoleConsumer._SEPARATOR)
        return "\n".join(lines)
