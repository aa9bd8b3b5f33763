"""Queue transport contract used by the worker and the CLI."""

from __future__ import annotations

import abc
from typing import Any, AsyncIterator, Generic, Optional, Tuple, TypeVar

from ..contracts import InboundMessage

RawMessageT = TypeVar("RawMessageT")

# What ``subscribe`` yields: the broker's own record, used to acknowledge it,
# and the decoded message handed to the dispatcher.
Delivery = Tuple[RawMessageT, InboundMessage]


class BaseTransport(Generic[RawMessageT], metaclass=abc.ABCMeta):
    """A topic-based queue with explicit acknowledgement.

    Usable as an async context manager which connects on entry and
    disconnects on exit.
    """

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def __aenter__(self) -> "BaseTransport[RawMessageT]":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    @abc.abstractmethod
    async def publish(self, topic: str, message: InboundMessage) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Delivery[RawMessageT]]:
        """Yield deliveries from ``topic``.

        Stops once ``lifespan`` seconds have passed, or never when it is None.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def ack(self, raw_message: RawMessageT) -> None:
        """Mark the delivery as processed so it is not redelivered."""
        raise NotImplementedError

    async def nack(self, raw_message: RawMessageT, requeue: bool = True) -> None:
        """Give the delivery back, or drop it when ``requeue`` is false."""
        await self.ack(raw_message)
