"""
Simple Async Pub/Sub Event Bus

Lightweight publish/subscribe built on asyncio queues. The funding monitor
publishes every new board under BOARD_TOPIC and each connected WebSocket
client consumes its own queue.
"""

import asyncio
from collections import defaultdict
from typing import Any, DefaultDict, Set

from core.logging import get_logger

BOARD_TOPIC = "funding_board"


class EventBus:
    """
    Async event bus with topic-based pub/sub.

    - Each subscriber gets its own bounded asyncio.Queue and never blocks publishers.
    - Unsubscribe when a client disconnects to avoid leaking queues.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    async def subscribe(self, topic: str) -> asyncio.Queue:
        """Subscribe to a topic. Returns an asyncio.Queue for receiving events."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to topic '{topic}'. total={len(self._topics[topic])}")
        return queue

    async def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """Unsubscribe a queue from a topic."""
        async with self._lock:
            self._topics[topic].discard(queue)
        self._logger.debug(f"Subscriber removed from topic '{topic}'. total={len(self._topics[topic])}")

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def publish(self, topic: str, event: Any) -> None:
        """Publish an event to a topic. Drops the event for subscribers whose queue is full."""
        for queue in list(self._topics.get(topic, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")


# Singleton event bus for the application
bus = EventBus()
