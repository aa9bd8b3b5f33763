"""Queue consumer for superkey requests."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Set

from .constants import DEFAULT_TOPIC
from .contracts import InboundMessage
from .dispatch import RequestDispatcher
from .transports import BaseTransport

logger = logging.getLogger(__name__)


class SuperkeyWorker:
    """Consumes request messages and processes each one in its own task."""

    def __init__(
        self,
        transport: BaseTransport,
        dispatcher: RequestDispatcher,
        topic: str = DEFAULT_TOPIC,
        max_concurrency: int = 10,
    ) -> None:
        self._transport = transport
        self._dispatcher = dispatcher
        self._topic = topic
        self._slots = asyncio.Semaphore(max(1, max_concurrency))
        self._tasks: Set[asyncio.Task] = set()

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Consume ``topic`` until the transport stops or ``lifespan`` expires."""
        logger.info(f"Listening for superkey requests on {self._topic}")
        try:
            async for raw_message, message in self._transport.subscribe(
                self._topic, lifespan=lifespan
            ):
                await self._slots.acquire()
                task = asyncio.create_task(self._handle(raw_message, message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            await self.drain()

    async def drain(self) -> None:
        """Wait for in-flight requests to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _handle(self, raw_message: Any, message: InboundMessage) -> None:
        try:
            await self._dispatcher.dispatch(message)
        except Exception:
            logger.exception(
                f'Unexpected error processing "{message.event_type}" request'
            )
            await self._transport.nack(raw_message, requeue=False)
        else:
            await self._transport.ack(raw_message)
        finally:
            self._slots.release()
