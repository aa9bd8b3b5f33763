"""Shared fixtures: fake cloud adapter, in-memory inventory and sample requests."""

from __future__ import annotations

from typing import Any, Dict, List, Set, Tuple

import pytest

from superkey.cloud.amazon import CostReport
from superkey.config import AmazonConfig, InventoryConfig, SuperkeyConfig
from superkey.contracts import CreateRequest, Step
from superkey.errors import ResourceNotFoundError
from superkey.inventory import InMemoryInventory, InternalAuthentication

ACCOUNT = "123456789012"
APPLICATION_TYPE = "/insights/platform/cost-management"


class FakeAmazonClient:
    """Records every call; ``fail`` and ``missing`` control what raises."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.fail: Dict[str, BaseException] = {}
        self.missing: Set[str] = set()
        self.reports: List[CostReport] = []

    @property
    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise self.fail[name]
        if name in self.missing:
            raise ResourceNotFoundError(f"{name}: not found")

    async def create_bucket(self, name: str) -> None:
        self._record("create_bucket", name)

    async def attach_bucket_policy(self, bucket: str, policy: str) -> None:
        self._record("attach_bucket_policy", bucket, policy)

    async def destroy_bucket(self, name: str) -> None:
        self._record("destroy_bucket", name)

    async def create_policy(self, name: str, document: str) -> str:
        self._record("create_policy", name, document)
        return f"arn:aws:iam::{ACCOUNT}:policy/{name}"

    async def destroy_policy(self, arn: str) -> None:
        self._record("destroy_policy", arn)

    async def create_role(self, name: str, trust_document: str) -> str:
        self._record("create_role", name, trust_document)
        return f"arn:aws:iam::{ACCOUNT}:role/{name}"

    async def destroy_role(self, name: str) -> None:
        self._record("destroy_role", name)

    async def bind_policy_to_role(self, policy_arn: str, role: str) -> None:
        self._record("bind_policy_to_role", policy_arn, role)

    async def unbind_policy_from_role(self, policy_arn: str, role: str) -> None:
        self._record("unbind_policy_from_role", policy_arn, role)

    async def create_cost_report(self, report: CostReport) -> None:
        self._record("create_cost_report", report.report_name)
        self.reports.append(report)

    async def destroy_cost_report(self, name: str) -> None:
        self._record("destroy_cost_report", name)


@pytest.fixture
def config() -> SuperkeyConfig:
    return SuperkeyConfig(
        inventory=InventoryConfig(max_attempts=3, retry_delay=0),
        amazon=AmazonConfig(iam_wait_seconds=0),
    )


@pytest.fixture
def fake_amazon() -> FakeAmazonClient:
    return FakeAmazonClient()


@pytest.fixture
def inventory() -> InMemoryInventory:
    return InMemoryInventory(
        credentials={
            "30": InternalAuthentication(
                id="30", authtype="access_key_secret_key", username="AKIA", password="secret"
            )
        }
    )


@pytest.fixture
def amazon_request() -> CreateRequest:
    return CreateRequest(
        identity_header="",
        org_id_header="1234",
        tenant_id="1234",
        source_id="10",
        application_id="20",
        application_type=APPLICATION_TYPE,
        super_key="30",
        provider="amazon",
        extra={"account": ACCOUNT, "result_type": "arn", "external_id": "ext-42"},
        superkey_steps=[
            Step(
                step=1,
                name="s3",
                payload='"create_cost_policy"',
                substitutions={"S3BUCKET": "s3", "ACCOUNT": "get_account"},
            ),
            Step(
                step=2,
                name="policy",
                payload='{"Resource": "arn:aws:s3:::S3BUCKET"}',
                substitutions={"S3BUCKET": "s3"},
            ),
            Step(
                step=3,
                name="role",
                payload='{"Principal": "ACCOUNT", "ExternalId": "EXTERNAL_ID"}',
                substitutions={"ACCOUNT": "get_account", "EXTERNAL_ID": "generate_external_id"},
            ),
            Step(step=4, name="bind_role"),
        ],
    )
