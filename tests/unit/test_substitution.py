"""Resource naming and payload substitution tests."""

from superkey.contracts import ForgedApplication
from superkey.providers.substitution import (
    generate_guid,
    resource_name,
    short_name,
    substitute_in_payload,
)


def test_resource_names():
    assert short_name("/insights/platform/cost-management") == "redhat-cost-management"
    assert (
        resource_name("/insights/platform/cloud-meter", "role", "deadbeef")
        == "redhat-cloud-meter-role-deadbeef"
    )


def test_generate_guid():
    first, second = generate_guid(), generate_guid()
    assert len(first) == 16
    int(first, 16)
    assert first != second


def test_substitutes_completed_bucket_and_account(amazon_request):
    forged = ForgedApplication(guid="abc", request=amazon_request)
    forged.mark_completed("s3", {"output": "the-bucket"})

    payload = substitute_in_payload(
        "arn:aws:s3:::S3BUCKET in ACCOUNT",
        forged,
        {"S3BUCKET": "s3", "ACCOUNT": "get_account"},
    )
    assert payload == "arn:aws:s3:::the-bucket in 123456789012"


def test_bucket_placeholder_left_when_s3_not_done(amazon_request):
    forged = ForgedApplication(guid="abc", request=amazon_request)
    payload = substitute_in_payload("arn:aws:s3:::S3BUCKET", forged, {"S3BUCKET": "s3"})
    assert payload == "arn:aws:s3:::S3BUCKET"


def test_missing_account_replaced_with_empty(amazon_request):
    request = amazon_request.model_copy(update={"extra": {}})
    forged = ForgedApplication(guid="abc", request=request)
    assert substitute_in_payload("id:ACCOUNT", forged, {"ACCOUNT": "get_account"}) == "id:"


def test_external_id(amazon_request):
    forged = ForgedApplication(guid="abc", request=amazon_request)
    subs = {"EXTERNAL_ID": "generate_external_id"}
    assert substitute_in_payload("EXTERNAL_ID", forged, subs) == "ext-42"

    request = amazon_request.model_copy(update={"extra": {"account": "1"}})
    forged = ForgedApplication(guid="abc", request=request)
    assert substitute_in_payload("EXTERNAL_ID", forged, subs) == "EXTERNAL_ID"


def test_unknown_kind_ignored(amazon_request):
    forged = ForgedApplication(guid="abc", request=amazon_request)
    assert substitute_in_payload("X", forged, {"X": "lookup_something"}) == "X"
