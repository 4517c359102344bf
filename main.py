"""Entry point for the public events feed.

Loads settings, wires up all components, and runs the polling engine
until interrupted with Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

import aiohttp

from consumers.console import ConsoleConsumer
from core.config import ConfigError, load_settings
from core.engine import PollEngine
from core.fetcher import EventSource
from core.repository import EventsRepository
from core.tracker import ConditionalFetchTracker
from events.bus import StateBus
from events.filters import EventFilterType

_CONFIG_PATH = Path(__file__).parent / "config" / "settings.yaml"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def main() -> None:
    try:
        settings = load_settings(_CONFIG_PATH)
        selected = EventFilterType.parse(settings.display.filter)
    except (ConfigError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    state_bus: StateBus = StateBus()

    async with aiohttp.ClientSession() as session:
        source = EventSource(
            session=session,
            base_url=settings.api.base_url,
            token=settings.api.token,
            user_agent=settings.api.user_agent,
            accept=settings.api.accept,
            timeout_seconds=settings.api.timeout_seconds,
        )
        repository = EventsRepository(
            source,
            ConditionalFetchTracker(settings.polling.default_interval_seconds),
        )
        engine = PollEngine(
            repository,
            bus=state_bus,
            retry_policy=settings.retry,
            poll_floor_seconds=settings.polling.floor_seconds,
            error_cooldown_seconds=settings.polling.error_cooldown_seconds,
        )
        consumer = ConsoleConsumer(
            state_bus=state_bus, selected=selected, query=settings.display.query
        )

        # Subscribe before the first snapshot is published.
        consumer_task = asyncio.create_task(consumer.start(), name="console-consumer")
        await asyncio.sleep(0)
        engine.start_polling()

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        logger.info("Polling %s — press Ctrl+C to stop", source.url)
        await stop_event.wait()

        logger.info("Shutting down…")
        await engine.stop()
        await consumer.stop()
        consumer_task.cancel()
        try:
            await consumer_task
        except asyncio.CancelledError:
            pass

    logger.info("Goodbye")


if __name__ == "__main__":
    asyncio.run(main())
