"""In-process sinks for decoded events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from eolistener.core.interfaces import IEventSink
from eolistener.core.models import DecodedEvent

logger = logging.getLogger(__name__)


class QueueSink:
    """Hand events to an asyncio.Queue for a consumer task on the same loop.

    The engine drains a batch without yielding, so the consumer only runs
    between batches. The queue is therefore unbounded and `deliver` never
    fails; `high_water` only sets the backlog size that triggers a warning.
    """

    def __init__(self, high_water: int = 1024) -> None:
        if high_water < 1:
            raise ValueError("high_water must be >= 1")
        self.high_water = high_water
        self.queue: asyncio.Queue[DecodedEvent] = asyncio.Queue()
        self._warned = False

    def deliver(self, event: DecodedEvent) -> None:
        self.queue.put_nowait(event)
        backlog = self.queue.qsize()
        if backlog > self.high_water and not self._warned:
            self._warned = True
            logger.warning("Event queue backlog %d exceeds %d; consumer is falling behind", backlog, self.high_water)
        elif backlog <= self.high_water:
            self._warned = False


class LoggingSink:
    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def deliver(self, event: DecodedEvent) -> None:
        logger.log(
            self.level,
            "%s at block %d (tx=%s): %s",
            event.name,
            event.block_number,
            event.tx_hash,
            dict(event.values),
        )


class FanOutSink:
    """Deliver each event to several sinks, in order."""

    def __init__(self, sinks: Iterable[IEventSink]) -> None:
        self.sinks = list(sinks)

    def deliver(self, event: DecodedEvent) -> None:
        for sink in self.sinks:
            sink.deliver(event)
