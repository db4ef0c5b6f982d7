"""In-process publish/subscribe bus for enrichment progress events.

Hey future me - this is what the SSE endpoint listens on. Every subscriber gets its
OWN bounded asyncio.Queue. publish() is synchronous and uses put_nowait, so a run can
never be slowed down by a browser tab that stopped reading: when a subscriber's queue
is full we drop ITS oldest event and keep going. Nobody subscribed? Events go nowhere.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from echometa.domain.ports import EnrichmentEvent, IEventPublisher

logger = logging.getLogger(__name__)


class EnrichmentEventBus(IEventPublisher):
    """Fan-out of EnrichmentEvents to any number of async subscribers."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[EnrichmentEvent]] = set()
        self._stats = {"published": 0, "dropped": 0}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    def publish(self, event: EnrichmentEvent) -> None:
        self._stats["published"] += 1
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                # Slow consumer: make room by dropping its oldest event
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
                queue.put_nowait(event)
                self._stats["dropped"] += 1
                logger.debug("Dropped oldest event for slow subscriber (%s)", event.name)

    def open_queue(self) -> asyncio.Queue[EnrichmentEvent]:
        """Register a subscriber queue. Pair with close_queue()."""
        queue: asyncio.Queue[EnrichmentEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        return queue

    def close_queue(self, queue: asyncio.Queue[EnrichmentEvent]) -> None:
        self._subscribers.discard(queue)

    async def subscribe(self) -> AsyncIterator[EnrichmentEvent]:
        """Yield events until the consumer stops iterating."""
        queue = self.open_queue()
        try:
            while True:
                yield await queue.get()
        finally:
            self.close_queue(queue)
