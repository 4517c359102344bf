"""Failure taxonomy for the fetch pipeline.

Every failure a fetch cycle can surface is either a :class:`FetchFailure`
subclass or an arbitrary unexpected exception.  :func:`describe_failure`
turns any of them into the single message string the presentation layer
is allowed to see.
"""

from __future__ import annotations

from typing import Optional


class FetchFailure(Exception):
    """Base class for failures of a single fetch."""


class TransportFailure(FetchFailure):
    """The request could not be completed (connectivity, DNS, timeout)."""


class RemoteProtocolFailure(FetchFailure):
    """The server answered, but not with something usable.

    ``status`` is set for unexpected HTTP statuses and left ``None`` when
    the body could not be decoded.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


def _detail(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def describe_failure(exc: BaseException) -> str:
    """Return a non-empty, user-facing message for *exc*."""
    if isinstance(exc, TransportFailure):
        return f"Network error: {_detail(exc)}"
    if isinstance(exc, RemoteProtocolFailure):
        return f"API error: {_detail(exc)}"
    return f"Unexpected error: {_detail(exc)}"
