"""Kafka transport implementation using aiokafka."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Iterable, Optional, Tuple

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.structs import TopicPartition

from ..contracts import InboundMessage
from .base import BaseTransport

logger = logging.getLogger(__name__)


def to_inbound(raw: Any) -> InboundMessage:
    headers = {
        key: value.decode(errors="replace") if isinstance(value, bytes) else str(value)
        for key, value in (raw.headers or ())
    }
    value = raw.value.decode(errors="replace") if raw.value is not None else ""
    return InboundMessage(headers=headers, value=value, topic=raw.topic)


class KafkaTransport(BaseTransport[Any]):
    """Kafka-based transport; offsets are committed manually on ack."""

    def __init__(
        self,
        brokers: Iterable[str] | str = "localhost:9092",
        group_id: str = "sources-superkey-worker",
        dlq_topic: Optional[str] = None,
    ) -> None:
        self.brokers = [brokers] if isinstance(brokers, str) else list(brokers)
        self.group_id = group_id
        self.dlq_topic = dlq_topic
        self._producer: Optional[AIOKafkaProducer] = None
        self._consumer: Optional[AIOKafkaConsumer] = None

    async def connect(self) -> None:
        self._producer = AIOKafkaProducer(bootstrap_servers=self.brokers)
        self._consumer = AIOKafkaConsumer(
            bootstrap_servers=self.brokers,
            group_id=self.group_id,
            enable_auto_commit=False,
            auto_offset_reset="earliest",
        )
        await self._producer.start()
        await self._consumer.start()

    async def disconnect(self) -> None:
        if self._consumer:
            await self._consumer.stop()
            self._consumer = None
        if self._producer:
            await self._producer.stop()
            self._producer = None

    async def publish(self, topic: str, message: InboundMessage) -> None:
        if not self._producer:
            raise RuntimeError("KafkaTransport not connected")
        headers = [(key, value.encode()) for key, value in message.headers.items()]
        await self._producer.send_and_wait(
            topic, value=message.value.encode(), headers=headers
        )

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[Any, InboundMessage]]:
        if not self._consumer:
            raise RuntimeError("KafkaTransport not connected")
        self._consumer.subscribe([topic])
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time is not None:
                remaining = lifespan - (loop.time() - start_time)
                if remaining <= 0:
                    break
                try:
                    raw = await asyncio.wait_for(self._consumer.getone(), remaining)
                except asyncio.TimeoutError:
                    break
            else:
                raw = await self._consumer.getone()
            yield raw, to_inbound(raw)

    async def ack(self, raw_message: Any) -> None:
        if not self._consumer:
            raise RuntimeError("KafkaTransport not connected")
        tp = TopicPartition(raw_message.topic, raw_message.partition)
        await self._consumer.commit({tp: raw_message.offset + 1})

    async def nack(self, raw_message: Any, requeue: bool = True) -> None:
        if not self._consumer:
            raise RuntimeError("KafkaTransport not connected")
        if requeue:
            tp = TopicPartition(raw_message.topic, raw_message.partition)
            self._consumer.seek(tp, raw_message.offset)
            return
        if self.dlq_topic and self._producer:
            await self._producer.send_and_wait(
                self.dlq_topic, value=raw_message.value, headers=list(raw_message.headers or ())
            )
        else:
            logger.warning(
                f"Dropping message at {raw_message.topic}:{raw_message.partition}:"
                f"{raw_message.offset}"
            )
        await self.ack(raw_message)
