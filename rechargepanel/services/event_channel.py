"""
Event Channel — in-process pub/sub for published statistics.

Panels publish immutable StatsResult values on a topic ("stats:<panel-id>");
each subscriber gets its own queue and reads values through an async
iterator. The HTTP layer turns that iterator into a server-sent-events
stream.
"""

import asyncio
from collections import defaultdict
from typing import AsyncIterator, Generic, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def stats_topic(panel_id: str) -> str:
    return f"stats:{panel_id}"


class EventChannel(Generic[T]):
    """
    Topic → subscriber queues.

    Publishing never blocks: a subscriber whose queue is full misses the
    value (and is logged), everyone else still receives it.
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    @property
    def subscriber_count(self) -> int:
        return sum(len(queues) for queues in self._subscribers.values())

    def subscribers(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def subscribe(
        self, topic: str, timeout: Optional[float] = None
    ) -> AsyncIterator[Optional[T]]:
        """
        Yield values published on `topic` from now on.

        With `timeout`, yields None after that many idle seconds so the
        caller can send a keepalive.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[topic].add(queue)
        logger.info("channel_subscriber_added", topic=topic, total=len(self._subscribers[topic]))

        try:
            while True:
                if timeout is None:
                    yield await queue.get()
                    continue
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=timeout)
                except asyncio.TimeoutError:
                    yield None
        finally:
            self._subscribers[topic].discard(queue)
            if not self._subscribers[topic]:
                del self._subscribers[topic]
            logger.info("channel_subscriber_removed", topic=topic)

    def publish(self, topic: str, value: T) -> int:
        """Deliver `value` to every current subscriber. Returns the recipient count."""
        queues = self._subscribers.get(topic)
        if not queues:
            return 0

        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(value)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("channel_queue_full", topic=topic)

        logger.debug("channel_published", topic=topic, recipients=delivered)
        return delivered
