"""Request and response bodies exchanged with the inventory service."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthenticationData(BaseModel):
    """Caller identity forwarded to the inventory service."""

    identity_header: str = ""
    org_id: str = ""
    account_number: str = ""


class PatchApplicationRequest(BaseModel):
    availability_status: Optional[str] = None
    availability_status_error: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class PatchSourceRequest(BaseModel):
    availability_status: Optional[str] = None


class AuthenticationCreateRequest(BaseModel):
    authtype: str = ""
    username: str = ""
    password: Optional[str] = None
    resource_type: str = "Application"
    resource_id: Any = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class ApplicationAuthenticationCreateRequest(BaseModel):
    application_id: Any
    authentication_id: Any


class AuthenticationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    authtype: Optional[str] = None
    username: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None


class InternalAuthentication(BaseModel):
    """Authentication fetched from the internal endpoint, secret exposed."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = ""
    authtype: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    extra: Dict[str, Any] = Field(default_factory=dict)
