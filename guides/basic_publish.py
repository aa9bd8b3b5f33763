"""Simple example showing how to queue a create request."""

import asyncio

from superkey import CreateRequest, InboundMessage, get_transport
from superkey.config import load_config
from superkey.constants import EVENT_CREATE, HEADER_EVENT_TYPE, HEADER_ORG_ID


async def main():
    """Publish one create request to the configured request topic."""
    config = load_config()
    transport = get_transport(config=config)
    await transport.connect()

    request = CreateRequest(
        tenant_id="1234",
        source_id="10",
        application_id="20",
        application_type="/insights/platform/cost-management",
        super_key="30",
        provider="amazon",
        extra={"account": "123456789012", "result_type": "arn"},
        superkey_steps=[
            {"step": 1, "name": "s3", "payload": '"create_cost_policy"',
             "substitutions": {"S3BUCKET": "s3", "ACCOUNT": "get_account"}},
            {"step": 2, "name": "policy", "payload": '{"Version": "2012-10-17", "Statement": []}'},
            {"step": 3, "name": "role", "payload": '{"Version": "2012-10-17", "Statement": []}'},
            {"step": 4, "name": "bind_role"},
        ],
    )
    message = InboundMessage(
        headers={HEADER_EVENT_TYPE: EVENT_CREATE, HEADER_ORG_ID: "1234"},
        value=request.model_dump_json(),
    )
    await transport.publish(config.transport.topic, message)
    print(f"Published create request to {config.transport.topic}")

    await transport.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
