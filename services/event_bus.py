"""
Simple Async Pub/Sub Event Bus

This module provides a lightweight publish/subscribe utility built on top of
asyncio queues. The view controller publishes its state snapshots here and any
number of WebSocket handlers subscribe and consume them independently.
"""

import asyncio
from typing import Any, Dict, DefaultDict, Set
from collections import defaultdict

from core.logging import get_logger


VIEW_STATE_TOPIC = "view_state"


class EventBus:
    """
    Async event bus with topic-based pub/sub.

    - Each subscriber gets its own asyncio.Queue and will not block publishers.
    - Unsubscribing is important to avoid queue leaks when clients disconnect.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, set()))

    async def subscribe(self, topic: str) -> asyncio.Queue:
        """
        Subscribe to a topic. Returns an asyncio.Queue for receiving events.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to topic '{topic}'. total={len(self._topics[topic])}")
        return queue

    async def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """
        Unsubscribe a queue from a topic and drain it.
        """
        async with self._lock:
            if queue in self._topics.get(topic, set()):
                self._topics[topic].remove(queue)
                while not queue.empty():
                    queue.get_nowait()
        self._logger.debug(f"Subscriber removed from topic '{topic}'. total={self.subscriber_count(topic)}")

    def publish_nowait(self, topic: str, event: Dict[str, Any]) -> None:
        """
        Publish an event from synchronous code. Drops events for full subscriber queues.
        """
        for q in list(self._topics.get(topic, set())):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # Drop event to avoid backpressure blocking
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")

    async def publish(self, topic: str, event: Dict[str, Any]) -> None:
        """
        Publish an event to a topic. Drops events if subscriber queue is full.
        """
        self.publish_nowait(topic, event)


# Singleton event bus for the application
bus = EventBus()
