"""Poll/merge engine: owns the polling loop and the published feed state.

One background task loops: fetch (with retry) -> merge -> count down ->
fetch again.  Failures are caught here, turned into an ``Error`` state
with a readable message, and followed by a fixed cooldown; they never
escape to the presentation layer.  Readers either poll the engine's
properties or subscribe to the :class:`~events.bus.StateBus` it publishes
an :class:`EngineSnapshot` to after every change.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Protocol, Union

from core.errors import describe_failure
from core.repository import FetchResult
from core.retry import RetryPolicy, SleepFn, retry_with_policy
from events.models import Event

logger = logging.getLogger(__name__)

DEFAULT_POLL_FLOOR_SECONDS = 10
DEFAULT_ERROR_COOLDOWN_SECONDS = 5.0


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Success:
    events: tuple[Event, ...]


@dataclass(frozen=True)
class Error:
    message: str


UIState = Union[Loading, Empty, Success, Error]


@dataclass(frozen=True)
class EngineSnapshot:
    """Everything a reader needs to render the feed at one instant."""

    ui_state: UIState
    is_refreshing: bool
    countdown: int
    next_poll: int
    error_message: Optional[str]


class Repository(Protocol):
    async def fetch_new_events(self) -> FetchResult: ...

    def poll_interval(self) -> int: ...


class SnapshotSink(Protocol):
    def publish(self, item: EngineSnapshot) -> None: ...


def merge_events(
    existing: Mapping[str, Event], incoming: Iterable[Event]
) -> dict[str, Event]:
    """Return *existing* with *incoming* inserted, later ids overwriting."""
    merged = dict(existing)
    for event in incoming:
        merged[event.id] = event
    return merged


def sort_events(events: Iterable[Event]) -> tuple[Event, ...]:
    """Newest first; ISO-8601 UTC strings sort correctly as text."""
    return tuple(sorted(events, key=lambda e: e.created_at, reverse=True))


class PollEngine:
    """Drives polling and exposes the derived feed state.

    Parameters
    ----------
    repository:
        Performs one fetch cycle; normally an
        :class:`~core.repository.EventsRepository`.
    bus:
        Optional sink that receives an :class:`EngineSnapshot` after each
        state change.
    retry_policy:
        Backoff applied to every fetch, from the loop and from
        :meth:`refresh` alike.
    poll_floor_seconds:
        Lower bound for the countdown, whatever the server advises.
    error_cooldown_seconds:
        Pause after a failed cycle before the loop tries again.
    initial_state:
        State shown before the first cycle completes.
    sleep:
        Coroutine used for every wait; defaults to :func:`asyncio.sleep`.
    """

    def __init__(
        self,
        repository: Repository,
        bus: Optional[SnapshotSink] = None,
        retry_policy: Optional[RetryPolicy] = None,
        poll_floor_seconds: int = DEFAULT_POLL_FLOOR_SECONDS,
        error_cooldown_seconds: float = DEFAULT_ERROR_COOLDOWN_SECONDS,
        initial_state: Optional[UIState] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self._repository = repository
        self._bus = bus
        self._retry_policy = retry_policy or RetryPolicy()
        self._poll_floor = poll_floor_seconds
        self._error_cooldown = error_cooldown_seconds
        self._sleep: SleepFn = sleep or asyncio.sleep

        self._accumulated: dict[str, Event] = {}
        self._sorted: tuple[Event, ...] = ()
        self._ui_state: UIState = initial_state or Loading()
        self._is_refreshing = False
        self._in_flight = 0
        self._next_poll = repository.poll_interval()
        self._countdown = self._next_poll
        self._error_message: Optional[str] = None

        self._poll_task: Optional[asyncio.Task[None]] = None
        self._refresh_tasks: set[asyncio.Task[None]] = set()
        self._disposed = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def ui_state(self) -> UIState:
        return self._ui_state

    @property
    def is_refreshing(self) -> bool:
        return self._is_refreshing

    @property
    def countdown(self) -> int:
        return self._countdown

    @property
    def next_poll(self) -> int:
        return self._next_poll

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def events(self) -> tuple[Event, ...]:
        """All events seen so far, newest first."""
        return self._sorted

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            ui_state=self._ui_state,
            is_refreshing=self._is_refreshing,
            countdown=self._countdown,
            next_poll=self._next_poll,
            error_message=self._error_message,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start_polling(self) -> None:
        """Start the polling loop, replacing any loop already running.

        Must be called from within a running event loop.
        """
        if self._disposed:
            raise RuntimeError("engine has been stopped")
        if self.is_polling:
            logger.info("Replacing active polling task")
            self._poll_task.cancel()  # type: ignore[union-attr]
        self._poll_task = asyncio.create_task(self._poll_loop(), name="events-poll")

    def refresh(self) -> asyncio.Task[None]:
        """Run one extra fetch-and-merge cycle outside the countdown.

        The running countdown is left untouched.  The returned task may be
        awaited; it never raises for a failed fetch.
        """
        if self._disposed:
            raise RuntimeError("engine has been stopped")
        task = asyncio.create_task(self._refresh_once(), name="events-refresh")
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)
        return task

    def clear_error(self) -> None:
        """Dismiss the current error and fall back to the accumulated feed."""
        if self._disposed:
            return
        self._error_message = None
        if isinstance(self._ui_state, Error):
            self._ui_state = Success(self._sorted) if self._accumulated else Empty()
        self._publish()

    async def stop(self) -> None:
        """Cancel polling and any pending refresh; no state changes follow."""
        self._disposed = True
        tasks = [t for t in (self._poll_task, *self._refresh_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for task, result in zip(tasks, results):
            if isinstance(result, Exception) and not isinstance(
                result, asyncio.CancelledError
            ):
                logger.error(
                    "Task %s raised during shutdown: %s", task.get_name(), result
                )
        self._poll_task = None
        self._refresh_tasks.clear()
        logger.info("Poll engine stopped")

    dispose = stop

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        logger.info("Polling started (floor=%ss)", self._poll_floor)
        while True:
            try:
                await self._run_cycle()
            except asyncio.CancelledError:
                logger.info("Polling task cancelled")
                raise
            except Exception as exc:
                self._record_failure(exc)
                await self._sleep(self._error_cooldown)
                continue
            await self._countdown_timer()

    async def _refresh_once(self) -> None:
        try:
            await self._run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._record_failure(exc)

    async def _run_cycle(self) -> None:
        """Fetch through the retry policy and fold the result into state."""
        self._in_flight += 1
        self._is_refreshing = True
        self._publish()
        try:
            result = await retry_with_policy(
                self._repository.fetch_new_events,
                self._retry_policy,
                sleep=self._sleep,
            )
        finally:
            self._in_flight -= 1

        self._next_poll = result.next_poll_seconds
        if not result.not_modified and result.events:
            self._merge(result.events)
            self._ui_state = Success(self._sorted)
        elif not self._accumulated:
            self._ui_state = Empty()
        else:
            self._ui_state = Success(self._sorted)

        self._is_refreshing = self._in_flight > 0
        self._error_message = None
        self._publish()

    def _merge(self, incoming: Iterable[Event]) -> None:
        # No suspension point between read and write, so concurrent cycles
        # on the same loop cannot interleave here.
        self._accumulated = merge_events(self._accumulated, incoming)
        self._sorted = sort_events(self._accumulated.values())
        logger.debug("Accumulated set now holds %d event(s)", len(self._accumulated))

    async def _countdown_timer(self) -> None:
        target = max(self._poll_floor, self._next_poll)
        for remaining in range(target, 0, -1):
            self._countdown = remaining
            self._publish()
            logger.debug("Next poll in %ss", remaining)
            await self._sleep(1)
        self._countdown = 0
        self._publish()

    def _record_failure(self, exc: Exception) -> None:
        message = describe_failure(exc)
        logger.error("Fetch cycle failed: %s", message, exc_info=exc)
        self._is_refreshing = self._in_flight > 0
        self._error_message = message
        self._ui_state = Error(message)
        self._publish()

    def _publish(self) -> None:
        if self._disposed or self._bus is None:
            return
        self._bus.publish(self.snapshot())
