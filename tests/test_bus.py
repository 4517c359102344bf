"""Tests for events.bus.StateBus."""

from __future__ import annotations

import asyncio

import pytest

from events.bus import StateBus


@pytest.mark.asyncio
async def test_publish_subscribe(state_bus: StateBus) -> None:
    """A subscriber should receive an item that is published."""
    received: list[object] = []
    item = object()

    async def consume() -> None:
        async for e in state_bus.subscribe():
            received.append(e)
            break  # stop after first item

    consumer_task = asyncio.create_task(consume())
    # Small delay to let the subscriber register.
    await asyncio.sleep(0.05)
    state_bus.publish(item)
    await asyncio.wait_for(consumer_task, timeout=2.0)

    assert received == [item]


@pytest.mark.asyncio
async def test_fan_out_multiple_subscribers(state_bus: StateBus) -> None:
    """Multiple subscribers should each receive every published item."""
    received_a: list[int] = []
    received_b: list[int] = []

    async def consume(dest: list[int]) -> None:
        async for e in state_bus.subscribe():
            dest.append(e)
            if len(dest) == 2:
                break

    task_a = asyncio.create_task(consume(received_a))
    task_b = asyncio.create_task(consume(received_b))
    await asyncio.sleep(0.05)

    state_bus.publish(1)
    state_bus.publish(2)
    await asyncio.wait_for(asyncio.gather(task_a, task_b), timeout=2.0)

    assert received_a == [1, 2]
    assert received_b == [1, 2]


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_a_no_op(state_bus: StateBus) -> None:
    state_bus.publish("dropped")
    assert state_bus.size() == 0


@pytest.mark.asyncio
async def test_size_reflects_active_subscribers(state_bus: StateBus) -> None:
    """size() should match the number of active subscriber queues."""
    assert state_bus.size() == 0

    async def consume() -> None:
        async for _ in state_bus.subscribe():
            break

    task1 = asyncio.create_task(consume())
    await asyncio.sleep(0.05)
    assert state_bus.size() == 1

    task2 = asyncio.create_task(consume())
    await asyncio.sleep(0.05)
    assert state_bus.size() == 2

    # Publish to let both consumers finish.
    state_bus.publish("done")
    await asyncio.wait_for(asyncio.gather(task1, task2), timeout=2.0)
    await asyncio.sleep(0.05)
    assert state_bus.size() == 0
