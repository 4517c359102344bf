"""Data model for public platform activity events.

Events are immutable once received.  Identity is the event ``id`` alone:
two :class:`Event` instances with the same ``id`` compare equal even when
the rest of their fields differ, which is what lets the engine replace a
stored event wholesale on re-delivery.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


class MalformedEventError(ValueError):
    """Raised when a raw record lacks a required field or has the wrong shape."""


class TrackedEventType(enum.Enum):
    """Closed set of event kinds kept by the feed, bound to their raw type."""

    PUSH = "PushEvent"
    PULL_REQUEST = "PullRequestEvent"
    ISSUES = "IssuesEvent"
    FORK = "ForkEvent"
    WATCH = "WatchEvent"
    CREATE = "CreateEvent"

    @property
    def raw(self) -> str:
        return self.value

    @classmethod
    def from_raw(cls, raw_type: Optional[str]) -> Optional[TrackedEventType]:
        """Return the member bound to *raw_type*, or ``None`` if untracked."""
        return _BY_RAW.get(raw_type or "")


_BY_RAW: dict[str, TrackedEventType] = {t.value: t for t in TrackedEventType}
TRACKED_RAW_TYPES: frozenset[str] = frozenset(_BY_RAW)


def _require(record: Mapping[str, Any], key: str) -> Any:
    try:
        value = record[key]
    except (KeyError, TypeError):
        raise MalformedEventError(f"missing field {key!r}") from None
    if value is None:
        raise MalformedEventError(f"field {key!r} is null")
    return value


@dataclass(frozen=True)
class Actor:
    id: int
    login: str
    avatar_url: str
    display_login: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Actor:
        return cls(
            id=data.get("id", 0),
            login=str(_require(data, "login")),
            avatar_url=data.get("avatar_url") or "",
            display_login=data.get("display_login"),
        )


@dataclass(frozen=True)
class Repo:
    id: int
    name: str
    url: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Repo:
        return cls(
            id=data.get("id", 0),
            name=str(_require(data, "name")),
            url=data.get("url") or "",
        )


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    author_name: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Commit:
        author = data.get("author") or {}
        if not isinstance(author, Mapping):
            raise MalformedEventError("commit author must be an object")
        return cls(
            sha=data.get("sha") or "",
            message=data.get("message") or "",
            author_name=author.get("name"),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class Payload:
    """Subset of the type-specific payload that the feed displays.

    Keys not listed here are ignored; every field is optional because each
    event type fills in a different slice of it.  A listed key holding the
    wrong shape raises :class:`MalformedEventError`.
    """

    action: Optional[str] = None
    ref: Optional[str] = None
    ref_type: Optional[str] = None
    push_id: Optional[int] = None
    size: Optional[int] = None
    head: Optional[str] = None
    before: Optional[str] = None
    commits: tuple[Commit, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Payload:
        commits = data.get("commits") or []
        if not isinstance(commits, list) or not all(
            isinstance(c, Mapping) for c in commits
        ):
            raise MalformedEventError("payload commits must be an array of objects")
        return cls(
            action=data.get("action"),
            ref=data.get("ref"),
            ref_type=data.get("ref_type"),
            push_id=data.get("push_id"),
            size=data.get("size"),
            head=data.get("head"),
            before=data.get("before"),
            commits=tuple(Commit.from_dict(c) for c in commits),
        )


@dataclass(frozen=True, eq=False)
class Event:
    """A single public activity event."""

    id: str
    type: str
    actor: Actor
    repo: Repo
    created_at: str
    public: bool = True
    payload: Optional[Payload] = field(default=None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def tracked_type(self) -> Optional[TrackedEventType]:
        return TrackedEventType.from_raw(self.type)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> Event:
        """Build an :class:`Event` from one decoded JSON record.

        Raises :class:`MalformedEventError` when a required field is absent.
        """
        if not isinstance(record, Mapping):
            raise MalformedEventError(
                f"expected an object, got {type(record).__name__}"
            )
        actor = _require(record, "actor")
        repo = _require(record, "repo")
        if not isinstance(actor, Mapping) or not isinstance(repo, Mapping):
            raise MalformedEventError("actor and repo must be objects")
        payload = record.get("payload")
        return cls(
            id=str(_require(record, "id")),
            type=str(_require(record, "type")),
            actor=Actor.from_dict(actor),
            repo=Repo.from_dict(repo),
            created_at=str(_require(record, "created_at")),
            public=bool(record.get("public", True)),
            payload=Payload.from_dict(payload)
            if isinstance(payload, Mapping)
            else None,
        )
