from __future__ import annotations

import asyncio
from typing import AsyncGenerator, Generic, TypeVar

T = TypeVar("T")


class StateBus(Generic[T]):
    """Fan-out bus backed by :class:`asyncio.Queue`.

    Every call to :meth:`subscribe` creates a dedicated unbounded queue.
    :meth:`publish` places the item into **every** subscriber queue without
    awaiting, so the publisher is never held up by a slow reader.
    """

    def __init__(self) -> None:
        self._subscriber_queues: list[asyncio.Queue[T]] = []

    def publish(self, item: T) -> None:
        """Broadcast *item* to all current subscribers."""
        for queue in self._subscriber_queues:
            queue.put_nowait(item)

    async def subscribe(self) -> AsyncGenerator[T, None]:
        """Create a new subscription and yield items as they arrive.

        The queue is registered on the first iteration and removed when the
        generator is closed.
        """
        queue: asyncio.Queue[T] = asyncio.Queue()
        self._subscriber_queues.append(queue)
        try:
            while True:
                item = await queue.get()
                yield item
        finally:
            self._subscriber_queues.remove(queue)

    def size(self) -> int:
        """Return the number of active subscriber queues."""
        return len(self._subscriber_queues)
