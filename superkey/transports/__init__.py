"""Request queue transports."""

from __future__ import annotations

from typing import Optional

from ..config import SuperkeyConfig, load_config
from .base import BaseTransport
from .inmemory import InMemoryTransport


def get_transport(
    backend: Optional[str] = None, config: Optional[SuperkeyConfig] = None
) -> BaseTransport:
    """Build the transport named by ``backend`` or, failing that, by ``config``.

    Kafka is imported lazily so the in-memory backend works without a broker
    client installed.
    """

    config = config or load_config()
    backend = (backend or config.transport.backend).lower()

    if backend == "inmemory":
        return InMemoryTransport()
    elif backend == "kafka":
        from .kafka import KafkaTransport

        kafka_conf = config.transport.kafka
        return KafkaTransport(
            brokers=kafka_conf.brokers,
            group_id=kafka_conf.group_id,
            dlq_topic=kafka_conf.dlq_topic,
        )
    else:
        raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = ["BaseTransport", "InMemoryTransport", "get_transport"]
