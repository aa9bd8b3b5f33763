"""Step-sequenced Amazon provider tests."""

import asyncio
import json

import pytest

from superkey.contracts import DestroyRequest, ForgedApplication, Step
from superkey.errors import ForgeTimeoutError, StepExecutionError, UnimplementedStepError
from superkey.providers import AmazonProvider

TEARDOWN_CALLS = [
    "unbind_policy_from_role",
    "destroy_policy",
    "destroy_role",
    "destroy_cost_report",
    "destroy_bucket",
]


@pytest.mark.asyncio
async def test_forge_all_steps(fake_amazon, amazon_request):
    provider = AmazonProvider(fake_amazon)
    forged = await provider.forge_application(amazon_request)

    assert forged.error is None
    assert forged.client is provider
    assert list(forged.steps_completed) == ["s3", "policy", "role", "bind_role"]
    assert fake_amazon.names == [
        "create_bucket",
        "attach_bucket_policy",
        "create_policy",
        "create_role",
        "bind_policy_to_role",
    ]

    bucket = f"redhat-cost-management-bucket-{forged.guid}"
    role = f"redhat-cost-management-role-{forged.guid}"
    assert forged.steps_completed["s3"] == {"output": bucket}
    assert forged.steps_completed["role"]["output"] == role
    assert forged.product.auth_payload.username == f"arn:aws:iam::123456789012:role/{role}"
    assert forged.product.extra["bucket"] == bucket


@pytest.mark.asyncio
async def test_forge_substitutes_payloads(fake_amazon, amazon_request):
    forged = await AmazonProvider(fake_amazon).forge_application(amazon_request)
    bucket = forged.steps_completed["s3"]["output"]
    calls = {call[0]: call for call in fake_amazon.calls}

    bucket_policy = json.loads(calls["attach_bucket_policy"][2])
    assert bucket_policy["Statement"][0]["Resource"] == f"arn:aws:s3:::{bucket}"
    assert "123456789012" in calls["attach_bucket_policy"][2]
    assert calls["create_policy"][2] == f'{{"Resource": "arn:aws:s3:::{bucket}"}}'
    assert calls["create_role"][2] == '{"Principal": "123456789012", "ExternalId": "ext-42"}'
    policy_arn = forged.steps_completed["policy"]["output"]
    assert calls["bind_policy_to_role"][1:] == (policy_arn, forged.steps_completed["role"]["output"])


@pytest.mark.asyncio
async def test_bucket_policy_only_when_requested(fake_amazon, amazon_request):
    request = amazon_request.model_copy(update={"superkey_steps": [Step(name="s3")]})
    await AmazonProvider(fake_amazon).forge_application(request)
    assert fake_amazon.names == ["create_bucket"]


@pytest.mark.asyncio
async def test_partial_failure_tears_down_completed_steps_only(fake_amazon, amazon_request):
    fake_amazon.fail["create_role"] = RuntimeError("AccessDenied")
    provider = AmazonProvider(fake_amazon)

    forged = await provider.forge_application(amazon_request)

    assert isinstance(forged.error, StepExecutionError)
    assert forged.error.step_name == "role"
    assert "AccessDenied" in str(forged.error)
    assert set(forged.steps_completed) == {"s3", "policy"}

    fake_amazon.calls.clear()
    errors = await provider.tear_down(forged)

    assert errors == []
    assert fake_amazon.names == ["destroy_policy", "destroy_bucket"]


@pytest.mark.asyncio
async def test_teardown_order_independent_of_creation_order(fake_amazon, amazon_request):
    forged = ForgedApplication(guid="abc", request=amazon_request)
    for name in ["cost_report", "s3", "role", "bind_role", "policy"]:
        forged.mark_completed(name, {"output": f"{name}-out"})

    errors = await AmazonProvider(fake_amazon).tear_down(forged)

    assert errors == []
    assert fake_amazon.names == TEARDOWN_CALLS
    assert AmazonProvider(fake_amazon).teardown_order == (
        "bind_role",
        "policy",
        "role",
        "cost_report",
        "s3",
    )


@pytest.mark.asyncio
async def test_teardown_attempts_every_step(fake_amazon, amazon_request):
    fake_amazon.fail["destroy_policy"] = RuntimeError("throttled")
    fake_amazon.fail["destroy_bucket"] = RuntimeError("BucketNotEmpty")
    forged = ForgedApplication(guid="abc", request=amazon_request)
    for name in ["s3", "policy", "role", "bind_role"]:
        forged.mark_completed(name, {"output": f"{name}-out"})

    errors = await AmazonProvider(fake_amazon).tear_down(forged)

    assert fake_amazon.names == [
        "unbind_policy_from_role",
        "destroy_policy",
        "destroy_role",
        "destroy_bucket",
    ]
    assert len(errors) == 2
    assert all(isinstance(err, StepExecutionError) for err in errors)
    assert [err.step_name for err in errors] == ["policy", "s3"]


@pytest.mark.asyncio
async def test_teardown_is_idempotent(fake_amazon, amazon_request):
    provider = AmazonProvider(fake_amazon)
    forged = await provider.forge_application(amazon_request)

    assert await provider.tear_down(forged) == []
    fake_amazon.missing.update(TEARDOWN_CALLS)
    assert await provider.tear_down(forged) == []


@pytest.mark.asyncio
async def test_unimplemented_step(fake_amazon, amazon_request):
    steps = [Step(step=1, name="s3"), Step(step=2, name="lambda")]
    request = amazon_request.model_copy(update={"superkey_steps": steps})

    forged = await AmazonProvider(fake_amazon).forge_application(request)

    assert isinstance(forged.error, UnimplementedStepError)
    assert 'superkey step "lambda" not implemented' in str(forged.error)
    assert list(forged.steps_completed) == ["s3"]
    assert forged.product is None


@pytest.mark.asyncio
async def test_cost_report(fake_amazon, amazon_request):
    steps = [
        Step(step=1, name="s3"),
        Step(
            step=2,
            name="cost_report",
            payload='{"ReportName": "koku", "S3Bucket": "S3BUCKET", "S3Prefix": "cost"}',
            substitutions={"S3BUCKET": "s3"},
        ),
    ]
    request = amazon_request.model_copy(update={"superkey_steps": steps})

    forged = await AmazonProvider(fake_amazon).forge_application(request)

    assert forged.error is None
    report = fake_amazon.reports[0]
    assert report.report_name == f"koku-{forged.guid}"
    assert report.s3_bucket == forged.steps_completed["s3"]["output"]
    assert report.to_definition()["S3Prefix"] == "cost"
    assert forged.steps_completed["cost_report"] == {"output": f"koku-{forged.guid}"}


@pytest.mark.asyncio
async def test_cost_report_bad_payload(fake_amazon, amazon_request):
    steps = [Step(step=1, name="cost_report", payload="{not json")]
    request = amazon_request.model_copy(update={"superkey_steps": steps})

    forged = await AmazonProvider(fake_amazon).forge_application(request)

    assert isinstance(forged.error, StepExecutionError)
    assert forged.steps_completed == {}
    assert fake_amazon.names == []


@pytest.mark.asyncio
async def test_reconstructed_teardown_matches_original(fake_amazon, amazon_request):
    provider = AmazonProvider(fake_amazon)
    forged = await provider.forge_application(amazon_request)

    fake_amazon.calls.clear()
    await provider.tear_down(forged)
    original = list(fake_amazon.calls)

    wire = forged.to_destroy_request().model_dump_json()
    rebuilt = ForgedApplication.reconstruct(DestroyRequest.model_validate_json(wire))
    fake_amazon.calls.clear()
    await AmazonProvider(fake_amazon).tear_down(rebuilt)

    assert fake_amazon.calls == original


@pytest.mark.asyncio
async def test_forge_timeout_keeps_partial_state(fake_amazon, amazon_request):
    async def slow_policy(name, document):
        await asyncio.sleep(5)

    fake_amazon.create_policy = slow_policy
    provider = AmazonProvider(fake_amazon, forge_timeout=0.05)

    forged = await provider.forge_application(amazon_request)

    assert isinstance(forged.error, ForgeTimeoutError)
    assert list(forged.steps_completed) == ["s3"]
