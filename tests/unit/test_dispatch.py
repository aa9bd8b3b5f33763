"""Request dispatcher tests covering the create and destroy flows."""

import pytest

from superkey.constants import EVENT_CREATE, EVENT_DESTROY
from superkey.contracts import CreateRequest, DestroyRequest, InboundMessage
from superkey.dispatch import RequestDispatcher
from superkey.errors import ValidationError
from superkey.forge import Forger
from superkey.providers import AmazonProvider, ProviderRegistry
from superkey.reporting import InventoryReporter


@pytest.fixture
def dispatcher(config, inventory, fake_amazon):
    registry = ProviderRegistry({"amazon": lambda credential, cfg: AmazonProvider(fake_amazon)})
    return RequestDispatcher(
        Forger(config, inventory, registry), InventoryReporter(inventory, config), config
    )


def message(event_type, body, **headers):
    headers = {"event_type": event_type, **headers}
    return InboundMessage(headers=headers, value=body.model_dump_json())


@pytest.mark.asyncio
async def test_create_success(dispatcher, inventory, fake_amazon, amazon_request):
    forged = await dispatcher.create_resources(amazon_request)

    assert forged.error is None
    assert "destroy_bucket" not in fake_amazon.names
    assert inventory.availability_checks == ["10"]
    assert inventory.count("patch_source") == 0


@pytest.mark.asyncio
async def test_forge_failure_tears_down_and_marks_unavailable(
    dispatcher, inventory, fake_amazon, amazon_request
):
    fake_amazon.fail["create_role"] = RuntimeError("AccessDenied")

    forged = await dispatcher.create_resources(amazon_request)

    assert forged.error is not None
    assert fake_amazon.names[-2:] == ["destroy_policy", "destroy_bucket"]
    assert inventory.count("create_authentication") == 0
    assert inventory.applications["20"]["availability_status"] == "unavailable"
    assert "AccessDenied" in inventory.applications["20"]["availability_status_error"]
    assert inventory.sources["10"]["availability_status"] == "unavailable"


@pytest.mark.asyncio
async def test_delivery_failure_tears_down(dispatcher, inventory, fake_amazon, amazon_request):
    inventory.failures["create_authentication"] = 500

    forged = await dispatcher.create_resources(amazon_request)

    assert forged.error is not None
    assert fake_amazon.names[-4:] == [
        "unbind_policy_from_role",
        "destroy_policy",
        "destroy_role",
        "destroy_bucket",
    ]
    assert inventory.count("patch_application") == 2
    assert inventory.sources["10"]["availability_status"] == "unavailable"


@pytest.mark.asyncio
async def test_failure_before_forge_marks_unavailable(dispatcher, inventory, amazon_request):
    request = amazon_request.model_copy(update={"provider": "acme"})

    forged = await dispatcher.create_resources(request)

    assert forged is None
    assert inventory.count("get_internal_authentication") == 0
    assert 'unsupported auth provider "acme"' in inventory.applications["20"]["availability_status_error"]


@pytest.mark.asyncio
async def test_reporting_failure_while_marking_unavailable(
    dispatcher, inventory, fake_amazon, amazon_request
):
    fake_amazon.fail["create_bucket"] = RuntimeError("boom")
    inventory.failures["patch_application"] = 503

    forged = await dispatcher.create_resources(amazon_request)

    assert forged.error is not None
    assert inventory.count("patch_source") == 0


@pytest.mark.asyncio
async def test_dispatch_destroy(dispatcher, fake_amazon, amazon_request):
    forged = await dispatcher.create_resources(amazon_request)
    fake_amazon.calls.clear()

    await dispatcher.dispatch(
        message(EVENT_DESTROY, forged.to_destroy_request(), **{"x-rh-sources-org-id": "1234"})
    )

    assert fake_amazon.names == [
        "unbind_policy_from_role",
        "destroy_policy",
        "destroy_role",
        "destroy_bucket",
    ]


@pytest.mark.asyncio
async def test_dispatch_create(dispatcher, inventory, amazon_request):
    await dispatcher.dispatch(
        message(EVENT_CREATE, amazon_request, **{"x-rh-identity": "aWQ=", "x-rh-sources-org-id": "1234"})
    )
    assert inventory.availability_checks == ["10"]


def test_decode_carries_identity_headers(dispatcher, amazon_request):
    body = amazon_request.model_copy(update={"identity_header": "", "org_id_header": ""})
    request = dispatcher.decode(
        message(EVENT_CREATE, body, **{"x-rh-identity": "aWQ=", "x-rh-sources-org-id": "99"})
    )

    assert isinstance(request, CreateRequest)
    assert request.identity_header == "aWQ="
    assert request.org_id_header == "99"


def test_decode_rejects_bad_messages(dispatcher, amazon_request):
    with pytest.raises(ValidationError, match="no identity"):
        dispatcher.decode(message(EVENT_CREATE, amazon_request))

    with pytest.raises(ValidationError, match="unknown event type"):
        dispatcher.decode(message("update_application", amazon_request, **{"x-rh-sources-org-id": "1"}))

    bad = InboundMessage(
        headers={"event_type": EVENT_DESTROY, "x-rh-sources-org-id": "1"}, value="{not json"
    )
    with pytest.raises(ValidationError, match="error parsing"):
        dispatcher.decode(bad)


@pytest.mark.asyncio
async def test_dispatch_skips_invalid_message(dispatcher, inventory, amazon_request):
    await dispatcher.dispatch(message(EVENT_CREATE, amazon_request))
    assert inventory.calls == []


@pytest.mark.asyncio
async def test_disabled_flags(dispatcher, config, inventory, fake_amazon, amazon_request):
    config.worker.disable_creation = True
    config.worker.disable_deletion = True

    assert await dispatcher.create_resources(amazon_request) is None
    destroy = DestroyRequest(super_key="30", guid="abc", provider="amazon", steps_completed={"s3": {}})
    assert await dispatcher.destroy_resources(destroy) == []

    assert inventory.calls == []
    assert fake_amazon.calls == []
