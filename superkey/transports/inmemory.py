"""In-memory transport for testing."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import AsyncIterator, Deque, Dict, List, Optional, Tuple

from ..contracts import InboundMessage
from .base import BaseTransport

RawMessage = Tuple[int, InboundMessage]


class InMemoryTransport(BaseTransport[RawMessage]):
    """Simple in-process queue for unit tests."""

    def __init__(self) -> None:
        self._queues: Dict[str, Deque[RawMessage]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._offset = 0
        self.acked: List[int] = []
        self.nacked: List[int] = []

    async def publish(self, topic: str, message: InboundMessage) -> None:
        """Publish message to in-memory queue."""
        async with self._lock:
            self._offset += 1
            self._queues[topic].append((self._offset, message.model_copy(update={"topic": topic})))

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawMessage, InboundMessage]]:
        """Subscribe to messages from topic.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep consuming. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time is not None:
                if loop.time() - start_time >= lifespan:
                    break

            async with self._lock:
                raw_message = self._queues[topic].popleft() if self._queues[topic] else None
            if raw_message is not None:
                yield raw_message, raw_message[1]
                continue

            await asyncio.sleep(0.05)

    async def ack(self, raw_message: RawMessage) -> None:
        self.acked.append(raw_message[0])

    async def nack(self, raw_message: RawMessage, requeue: bool = True) -> None:
        self.nacked.append(raw_message[0])
        if requeue and raw_message[1].topic:
            async with self._lock:
                self._queues[raw_message[1].topic].append(raw_message)
