"""Tests for the in-process enrichment event bus."""

import asyncio

from echometa.domain.ports import EnrichmentEvent
from echometa.infrastructure.notifications import EnrichmentEventBus


def _event(n: int) -> EnrichmentEvent:
    return EnrichmentEvent(name="enrichment:progress", payload={"current": n})


class TestEventBus:
    def test_publish_without_subscribers_goes_nowhere(self) -> None:
        bus = EnrichmentEventBus()

        bus.publish(_event(1))

        assert bus.stats == {"published": 1, "dropped": 0}

    async def test_every_subscriber_gets_every_event(self) -> None:
        bus = EnrichmentEventBus()
        first, second = bus.open_queue(), bus.open_queue()

        bus.publish(_event(1))

        assert (await first.get()).payload == {"current": 1}
        assert (await second.get()).payload == {"current": 1}

    async def test_slow_subscriber_loses_oldest(self) -> None:
        bus = EnrichmentEventBus(max_queue_size=2)
        queue = bus.open_queue()

        for n in range(1, 5):
            bus.publish(_event(n))

        received = [queue.get_nowait().payload["current"] for _ in range(queue.qsize())]
        assert received == [3, 4]
        assert bus.stats["dropped"] == 2

    def test_close_queue_unsubscribes(self) -> None:
        bus = EnrichmentEventBus()
        queue = bus.open_queue()

        bus.close_queue(queue)
        bus.close_queue(queue)
        bus.publish(_event(1))

        assert bus.subscriber_count == 0
        assert queue.empty()

    async def test_subscribe_iterator_cleans_up(self) -> None:
        bus = EnrichmentEventBus()
        received: list[EnrichmentEvent] = []

        async def consume() -> None:
            async for event in bus.subscribe():
                received.append(event)
                break

        task = asyncio.create_task(consume())
        while bus.subscriber_count == 0:
            await asyncio.sleep(0)
        bus.publish(_event(7))
        await task

        assert received[0].payload == {"current": 7}
        assert bus.subscriber_count == 0
