"""Example running the worker against a real Amazon account.

The inventory service is replaced by the in-memory one, so the created
authentication and availability checks are printed instead of stored.
Credentials are read from AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY.
"""

import asyncio
import os
import sys

from superkey import (
    CreateRequest,
    Forger,
    InboundMessage,
    InventoryReporter,
    RequestDispatcher,
    SuperkeyWorker,
    default_registry,
)
from superkey.config import load_config
from superkey.constants import EVENT_CREATE, HEADER_EVENT_TYPE, HEADER_ORG_ID
from superkey.inventory import InMemoryInventory, InternalAuthentication
from superkey.log import configure_logging
from superkey.transports import InMemoryTransport


async def main():
    request = CreateRequest.model_validate_json(open(sys.argv[1]).read())
    config = load_config()
    configure_logging(config.log_level)

    inventory = InMemoryInventory(
        credentials={
            request.super_key: InternalAuthentication(
                id=request.super_key,
                username=os.environ["AWS_ACCESS_KEY_ID"],
                password=os.environ["AWS_SECRET_ACCESS_KEY"],
            )
        }
    )
    forger = Forger(config, inventory, default_registry(config))
    dispatcher = RequestDispatcher(forger, InventoryReporter(inventory, config), config)

    transport = InMemoryTransport()
    await transport.publish(
        config.transport.topic,
        InboundMessage(
            headers={HEADER_EVENT_TYPE: EVENT_CREATE, HEADER_ORG_ID: request.tenant_id},
            value=request.model_dump_json(),
        ),
    )

    worker = SuperkeyWorker(transport, dispatcher, topic=config.transport.topic)
    await worker.start(lifespan=float(os.getenv("LIFESPAN", "120")))

    for operation, args in inventory.calls:
        print(operation, args)


if __name__ == "__main__":
    asyncio.run(main())
