"""Builders and test doubles shared across the test modules."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional


def build_record(
    event_id: str = "1",
    event_type: str = "PushEvent",
    created_at: str = "2025-06-15T10:30:00Z",
    login: str = "octocat",
    repo: str = "octocat/hello-world",
    payload: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Return a raw event record shaped like the API's JSON."""
    return {
        "id": event_id,
        "type": event_type,
        "actor": {
            "id": 583231,
            "login": login,
            "display_login": login,
            "avatar_url": f"https://avatars.githubusercontent.com/u/{login}",
        },
        "repo": {
            "id": 1296269,
            "name": repo,
            "url": f"https://api.github.com/repos/{repo}",
        },
        "payload": payload if payload is not None else {},
        "public": True,
        "created_at": created_at,
    }


class FakeSleep:
    """Stand-in for :func:`asyncio.sleep` that records every requested delay.

    Once *park_after* calls have been made, the call parks until cancelled,
    freezing the caller at that point so tests can inspect state.
    """

    def __init__(self, park_after: Optional[int] = None) -> None:
        self.calls: list[float] = []
        self.park_after = park_after

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        if self.park_after is not None and len(self.calls) >= self.park_after:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


class RecordingSink:
    """Collects every published snapshot in order."""

    def __init__(self) -> None:
        self.items: list[Any] = []

    def publish(self, item: Any) -> None:
        self.items.append(item)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* holds or *timeout* expires."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)
