"""Amazon resource adapter built on aioboto3."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import aioboto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ResourceNotFoundError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset(
    {"NoSuchEntity", "NoSuchBucket", "NotFound", "404", "ResourceNotFoundException"}
)

# Lets the billing service deliver reports into the bucket. The placeholder
# strings are replaced through the step's substitution map.
COST_S3_POLICY = """{
  "Version": "2008-10-17",
  "Id": "Policy1335892530063",
  "Statement": [
    {
      "Sid": "Stmt1335892150622",
      "Effect": "Allow",
      "Principal": {"Service": "billingreports.amazonaws.com"},
      "Action": ["s3:GetBucketAcl", "s3:GetBucketPolicy"],
      "Resource": "arn:aws:s3:::S3BUCKET",
      "Condition": {
        "StringEquals": {
          "aws:SourceArn": "arn:aws:cur:us-east-1:ACCOUNT:definition/*",
          "aws:SourceAccount": "ACCOUNT"
        }
      }
    },
    {
      "Sid": "Stmt1335892526596",
      "Effect": "Allow",
      "Principal": {"Service": "billingreports.amazonaws.com"},
      "Action": "s3:PutObject",
      "Resource": "arn:aws:s3:::S3BUCKET/*",
      "Condition": {
        "StringEquals": {
          "aws:SourceArn": "arn:aws:cur:us-east-1:ACCOUNT:definition/*",
          "aws:SourceAccount": "ACCOUNT"
        }
      }
    }
  ]
}"""


class CostReport(BaseModel):
    """Cost and usage report definition, as sent in a ``cost_report`` step."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    report_name: str = Field(alias="ReportName")
    time_unit: str = Field(default="HOURLY", alias="TimeUnit")
    format: str = Field(default="textORcsv", alias="Format")
    compression: str = Field(default="GZIP", alias="Compression")
    s3_bucket: str = Field(default="", alias="S3Bucket")
    s3_prefix: str = Field(default="", alias="S3Prefix")
    s3_region: str = Field(default="us-east-1", alias="S3Region")
    additional_schema_elements: List[str] = Field(
        default_factory=list, alias="AdditionalSchemaElements"
    )
    additional_artifacts: Optional[List[str]] = Field(
        default=None, alias="AdditionalArtifacts"
    )

    def to_definition(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AmazonApi(Protocol):
    """Capabilities the step-sequenced provider needs from Amazon."""

    async def create_bucket(self, name: str) -> None: ...

    async def attach_bucket_policy(self, bucket: str, policy: str) -> None: ...

    async def destroy_bucket(self, name: str) -> None: ...

    async def create_policy(self, name: str, document: str) -> str: ...

    async def destroy_policy(self, arn: str) -> None: ...

    async def create_role(self, name: str, trust_document: str) -> str: ...

    async def destroy_role(self, name: str) -> None: ...

    async def bind_policy_to_role(self, policy_arn: str, role: str) -> None: ...

    async def unbind_policy_from_role(self, policy_arn: str, role: str) -> None: ...

    async def create_cost_report(self, report: CostReport) -> None: ...

    async def destroy_cost_report(self, name: str) -> None: ...


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class AmazonClient(AmazonApi):
    """Amazon adapter bound to one tenant's access key pair."""

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
    ) -> None:
        self._region = region
        self._endpoint_url = endpoint_url
        self._session = aioboto3.Session(
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )

    def _client(self, service: str) -> Any:
        return self._session.client(
            service, region_name=self._region, endpoint_url=self._endpoint_url
        )

    async def _delete(self, description: str, coro: Any) -> None:
        try:
            await coro
        except ClientError as exc:
            if _error_code(exc) in NOT_FOUND_CODES:
                raise ResourceNotFoundError(f"{description} does not exist") from exc
            raise

    # -- S3 -------------------------------------------------------------
    async def create_bucket(self, name: str) -> None:
        kwargs: Dict[str, Any] = {"Bucket": name}
        if self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        async with self._client("s3") as s3:
            await s3.create_bucket(**kwargs)

    async def attach_bucket_policy(self, bucket: str, policy: str) -> None:
        async with self._client("s3") as s3:
            await s3.put_bucket_policy(Bucket=bucket, Policy=policy)

    async def destroy_bucket(self, name: str) -> None:
        async with self._client("s3") as s3:
            # A bucket has to be empty before it can be deleted.
            paginator = s3.get_paginator("list_objects_v2")
            try:
                async for page in paginator.paginate(Bucket=name):
                    for obj in page.get("Contents", []):
                        await s3.delete_object(Bucket=name, Key=obj["Key"])
            except ClientError as exc:
                if _error_code(exc) in NOT_FOUND_CODES:
                    raise ResourceNotFoundError(f'S3 bucket "{name}" does not exist') from exc
                raise
            await self._delete(f'S3 bucket "{name}"', s3.delete_bucket(Bucket=name))

    # -- IAM ------------------------------------------------------------
    async def create_policy(self, name: str, document: str) -> str:
        async with self._client("iam") as iam:
            out = await iam.create_policy(PolicyName=name, PolicyDocument=document)
        return out["Policy"]["Arn"]

    async def destroy_policy(self, arn: str) -> None:
        async with self._client("iam") as iam:
            await self._delete(f'policy "{arn}"', iam.delete_policy(PolicyArn=arn))

    async def create_role(self, name: str, trust_document: str) -> str:
        async with self._client("iam") as iam:
            out = await iam.create_role(
                RoleName=name, AssumeRolePolicyDocument=trust_document
            )
        return out["Role"]["Arn"]

    async def destroy_role(self, name: str) -> None:
        async with self._client("iam") as iam:
            await self._delete(f'role "{name}"', iam.delete_role(RoleName=name))

    async def bind_policy_to_role(self, policy_arn: str, role: str) -> None:
        async with self._client("iam") as iam:
            await iam.attach_role_policy(RoleName=role, PolicyArn=policy_arn)

    async def unbind_policy_from_role(self, policy_arn: str, role: str) -> None:
        async with self._client("iam") as iam:
            await self._delete(
                f'binding of "{policy_arn}" to "{role}"',
                iam.detach_role_policy(RoleName=role, PolicyArn=policy_arn),
            )

    # -- Cost and usage reports -----------------------------------------
    async def create_cost_report(self, report: CostReport) -> None:
        async with self._client("cur") as cur:
            await cur.put_report_definition(ReportDefinition=report.to_definition())

    async def destroy_cost_report(self, name: str) -> None:
        async with self._client("cur") as cur:
            await self._delete(
                f'cost and usage report "{name}"',
                cur.delete_report_definition(ReportName=name),
            )
