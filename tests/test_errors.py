"""Tests for core.errors.describe_failure."""

from __future__ import annotations

import pytest

from core.errors import (
    FetchFailure,
    RemoteProtocolFailure,
    TransportFailure,
    describe_failure,
)


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (TransportFailure("connection reset"), "Network error: connection reset"),
        (RemoteProtocolFailure("HTTP 429", status=429), "API error: HTTP 429"),
        (ValueError("bad"), "Unexpected error: bad"),
    ],
)
def test_messages(exc: Exception, expected: str) -> None:
    assert describe_failure(exc) == expected


def test_empty_message_falls_back_to_class_name() -> None:
    assert describe_failure(TransportFailure()) == "Network error: TransportFailure"
    assert describe_failure(RuntimeError()) == "Unexpected error: RuntimeError"


def test_hierarchy() -> None:
    assert issubclass(TransportFailure, FetchFailure)
    assert issubclass(RemoteProtocolFailure, FetchFailure)
    assert RemoteProtocolFailure("x").status is None
