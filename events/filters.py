"""Event classification, search filtering, and display formatting helpers."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from events.models import TRACKED_RAW_TYPES, Event, TrackedEventType

_GITHUB_WEB_URL = "https://github.com"


def is_tracked(raw_type: Optional[str]) -> bool:
    """Return ``True`` when *raw_type* is one of the tracked event kinds."""
    return raw_type in TRACKED_RAW_TYPES


def is_tracked_record(record: Any) -> bool:
    """Apply :func:`is_tracked` to the ``type`` field of a raw record."""
    if not isinstance(record, Mapping):
        return False
    return is_tracked(record.get("type"))


class EventFilterType(enum.Enum):
    """Type selector offered to the presentation layer."""

    ALL = "All"
    PUSH = "Push"
    PR = "PR"
    ISSUES = "Issues"
    CREATE = "Create"
    WATCH = "Watch"

    @classmethod
    def parse(cls, value: str) -> EventFilterType:
        """Look up a selector by its label, case-insensitively."""
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        raise ValueError(f"unknown event filter {value!r}")


_FILTER_TYPES: dict[EventFilterType, Optional[TrackedEventType]] = {
    EventFilterType.ALL: None,
    EventFilterType.PUSH: TrackedEventType.PUSH,
    EventFilterType.PR: TrackedEventType.PULL_REQUEST,
    EventFilterType.ISSUES: TrackedEventType.ISSUES,
    EventFilterType.CREATE: TrackedEventType.CREATE,
    EventFilterType.WATCH: TrackedEventType.WATCH,
}


def filter_events(
    events: Iterable[Event],
    selected: EventFilterType = EventFilterType.ALL,
    query: str = "",
) -> list[Event]:
    """Return the events matching both the *selected* type and *query*.

    *query* is a case-insensitive substring matched against the actor
    login, repository name and raw event type.  A blank query matches all.
    """
    wanted = _FILTER_TYPES[selected]
    q = query.strip().lower()

    matched: list[Event] = []
    for event in events:
        if wanted is not None and event.type != wanted.raw:
            continue
        if q and not (
            q in event.actor.login.lower()
            or q in event.repo.name.lower()
            or q in event.type.lower()
        ):
            continue
        matched.append(event)
    return matched


def format_event_type(event_type: str) -> str:
    """``"PushEvent"`` -> ``"Push"``."""
    return event_type.removesuffix("Event")


def format_branch_name(ref: str) -> str:
    """``"refs/heads/main"`` -> ``"main"``."""
    return ref.removeprefix("refs/heads/")


def format_commit_count(count: int) -> str:
    return f"{count} commit{'' if count == 1 else 's'}"


def build_repo_url(repo_name: str) -> str:
    return f"{_GITHUB_WEB_URL}/{repo_name}"


def build_profile_url(username: str) -> str:
    return f"{_GITHUB_WEB_URL}/{username}"


def format_duration(seconds: int) -> str:
    """Render *seconds* in its largest whole unit (s, m, h or d)."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 60 * 60:
        return f"{seconds // 60}m"
    if seconds < 60 * 60 * 24:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def format_relative_time(iso_utc: str, now: Optional[datetime] = None) -> str:
    """Turn an ISO-8601 UTC timestamp into ``"3h ago"`` style text.

    Unparseable input is returned unchanged; timestamps in the future are
    treated as ``"0s ago"``.
    """
    try:
        then = datetime.fromisoformat(iso_utc.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return iso_utc
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    current = now or datetime.now(tz=timezone.utc)
    elapsed = max(0, int((current - then).total_seconds()))
    return f"{format_duration(elapsed)} ago"
