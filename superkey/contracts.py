"""Request, message and result contracts for the superkey worker."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import HEADER_EVENT_TYPE, HEADER_IDENTITY, HEADER_ORG_ID, STEP_S3
from .inventory.identity import decode_account_number
from .inventory.models import AuthenticationCreateRequest, AuthenticationData

logger = logging.getLogger(__name__)

# step name -> recorded outputs, e.g. {"role": {"output": "...", "arn": "..."}}
StepsCompleted = Dict[str, Dict[str, str]]


class Step(BaseModel):
    """One unit of provisioning work."""

    step: int = 0
    name: str
    payload: str = ""
    substitutions: Dict[str, str] = Field(default_factory=dict)


class CreateRequest(BaseModel):
    """Request to forge cloud resources for a tenant application."""

    identity_header: str = ""
    org_id_header: str = ""
    tenant_id: str = ""
    source_id: str = ""
    application_id: str = ""
    application_type: str = ""
    super_key: str = ""
    provider: str
    extra: Dict[str, str] = Field(default_factory=dict)
    superkey_steps: List[Step] = Field(default_factory=list)

    @property
    def auth_data(self) -> AuthenticationData:
        return AuthenticationData(
            identity_header=self.identity_header,
            org_id=self.org_id_header,
            account_number=self.extra.get("account")
            or decode_account_number(self.identity_header),
        )


class DestroyRequest(BaseModel):
    """Request to tear down resources recorded by an earlier forge."""

    identity_header: str = ""
    org_id_header: str = ""
    tenant_id: str = ""
    super_key: str = ""
    guid: str = ""
    provider: str
    steps_completed: StepsCompleted = Field(default_factory=dict)


class Product(BaseModel):
    """Payload shipped to the inventory service after a successful forge."""

    source_id: str
    extra: Dict[str, Any] = Field(default_factory=dict)
    auth_payload: AuthenticationCreateRequest = Field(
        default_factory=AuthenticationCreateRequest
    )


class ForgedApplication(BaseModel):
    """State of a forge attempt.

    Created empty at the start of a forge, filled in step by step and handed
    to the reporter on success or to the teardown saga on failure.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    guid: str
    request: CreateRequest
    steps_completed: StepsCompleted = Field(default_factory=dict)
    product: Optional[Product] = None
    client: Optional[Any] = Field(default=None, exclude=True, repr=False)
    error: Optional[BaseException] = Field(default=None, exclude=True)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.product is not None

    def mark_completed(self, name: str, data: Dict[str, str]) -> None:
        """Record ``name`` as done. A repeated name replaces the earlier record."""
        self.steps_completed[name] = dict(data)

    def extra_payload(self) -> Dict[str, Any]:
        extra: Dict[str, Any] = {
            "_superkey": {
                "steps": self.steps_completed,
                "guid": self.guid,
                "provider": self.request.provider,
            }
        }
        bucket = self.steps_completed.get(STEP_S3)
        if bucket is not None:
            extra["bucket"] = bucket.get("output", "")
        return extra

    def create_payload(self, username: str) -> Product:
        """Populate ``product`` from the recorded steps."""
        try:
            resource_id: Any = int(self.request.application_id)
        except ValueError:
            logger.warning(
                f"Application id {self.request.application_id!r} is not numeric"
            )
            resource_id = self.request.application_id

        self.product = Product(
            source_id=self.request.source_id,
            extra=self.extra_payload(),
            auth_payload=AuthenticationCreateRequest(
                authtype=self.request.extra.get("result_type", ""),
                username=username,
                resource_type="Application",
                resource_id=resource_id,
            ),
        )
        return self.product

    def to_destroy_request(self) -> DestroyRequest:
        return DestroyRequest(
            identity_header=self.request.identity_header,
            org_id_header=self.request.org_id_header,
            tenant_id=self.request.tenant_id,
            super_key=self.request.super_key,
            guid=self.guid,
            provider=self.request.provider,
            steps_completed={k: dict(v) for k, v in self.steps_completed.items()},
        )

    @classmethod
    def reconstruct(cls, request: DestroyRequest) -> "ForgedApplication":
        """Rebuild the teardown view of an application from a destroy request."""
        return cls(
            guid=request.guid,
            steps_completed={k: dict(v) for k, v in request.steps_completed.items()},
            request=CreateRequest(
                identity_header=request.identity_header,
                org_id_header=request.org_id_header,
                tenant_id=request.tenant_id,
                super_key=request.super_key,
                provider=request.provider,
            ),
        )


class InboundMessage(BaseModel):
    """A message as delivered by the queue: headers plus a JSON body."""

    headers: Dict[str, str] = Field(default_factory=dict)
    value: str = ""
    topic: Optional[str] = None

    def header(self, name: str) -> str:
        return self.headers.get(name, "")

    @property
    def event_type(self) -> str:
        return self.header(HEADER_EVENT_TYPE)

    @property
    def identity_header(self) -> str:
        return self.header(HEADER_IDENTITY)

    @property
    def org_id_header(self) -> str:
        return self.header(HEADER_ORG_ID)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "InboundMessage":
        return cls.model_validate_json(data)
