"""Tests for events.models."""

from __future__ import annotations

import dataclasses

import pytest

from helpers import build_record
from events.models import (
    TRACKED_RAW_TYPES,
    Event,
    MalformedEventError,
    Payload,
    TrackedEventType,
)


class TestTrackedEventType:
    def test_raw_values(self) -> None:
        assert TrackedEventType.PUSH.raw == "PushEvent"
        assert TrackedEventType.PULL_REQUEST.raw == "PullRequestEvent"
        assert TrackedEventType.CREATE.raw == "CreateEvent"

    def test_raw_set_matches_members(self) -> None:
        assert TRACKED_RAW_TYPES == {
            "PushEvent",
            "PullRequestEvent",
            "IssuesEvent",
            "ForkEvent",
            "WatchEvent",
            "CreateEvent",
        }

    def test_from_raw(self) -> None:
        assert TrackedEventType.from_raw("ForkEvent") is TrackedEventType.FORK
        assert TrackedEventType.from_raw("GollumEvent") is None
        assert TrackedEventType.from_raw(None) is None


class TestEventFromDict:
    def test_parses_nested_fields(self) -> None:
        event = Event.from_dict(
            build_record(
                "42",
                "PushEvent",
                "2025-06-15T10:30:00Z",
                payload={
                    "push_id": 99,
                    "ref": "refs/heads/main",
                    "commits": [
                        {
                            "sha": "abc",
                            "message": "Fix it",
                            "author": {"name": "Mona"},
                            "url": "https://api.github.com/commits/abc",
                        }
                    ],
                },
            )
        )

        assert event.id == "42"
        assert event.type == "PushEvent"
        assert event.tracked_type is TrackedEventType.PUSH
        assert event.actor.login == "octocat"
        assert event.actor.display_login == "octocat"
        assert event.repo.name == "octocat/hello-world"
        assert event.created_at == "2025-06-15T10:30:00Z"
        assert event.public is True
        assert event.payload is not None
        assert event.payload.push_id == 99
        assert event.payload.ref == "refs/heads/main"
        assert event.payload.commits[0].author_name == "Mona"

    def test_numeric_id_is_stringified(self) -> None:
        record = build_record()
        record["id"] = 12345
        assert Event.from_dict(record).id == "12345"

    def test_missing_payload_is_none(self) -> None:
        record = build_record()
        del record["payload"]
        assert Event.from_dict(record).payload is None

    @pytest.mark.parametrize("missing", ["id", "type", "actor", "repo", "created_at"])
    def test_missing_required_field_raises(self, missing: str) -> None:
        record = build_record()
        del record[missing]
        with pytest.raises(MalformedEventError):
            Event.from_dict(record)

    def test_non_mapping_record_raises(self) -> None:
        with pytest.raises(MalformedEventError):
            Event.from_dict(["not", "a", "record"])  # type: ignore[arg-type]


class TestEventIdentity:
    def test_equality_is_by_id_only(self) -> None:
        a = Event.from_dict(build_record("7", "PushEvent", login="alice"))
        b = Event.from_dict(build_record("7", "WatchEvent", login="bob"))
        c = Event.from_dict(build_record("8", "PushEvent", login="alice"))

        assert a == b
        assert hash(a) == hash(b)
        assert a != c

    def test_event_is_immutable(self) -> None:
        event = Event.from_dict(build_record())
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.type = "ForkEvent"  # type: ignore[misc]

    def test_payload_ignores_unknown_keys(self) -> None:
        payload = Payload.from_dict({"action": "opened", "pull_request": {"id": 1}})
        assert payload.action == "opened"
        assert payload.commits == ()

    @pytest.mark.parametrize(
        "data",
        [{"commits": 5}, {"commits": ["abc"]}, {"commits": [{"author": "octocat"}]}],
    )
    def test_payload_with_wrong_commit_shape_raises(self, data: dict) -> None:
        with pytest.raises(MalformedEventError):
            Payload.from_dict(data)
