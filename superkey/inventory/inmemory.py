"""In-memory implementation of the inventory service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..errors import ReportingError
from .base import InventoryApi
from .models import (
    ApplicationAuthenticationCreateRequest,
    AuthenticationCreateRequest,
    AuthenticationData,
    AuthenticationResponse,
    InternalAuthentication,
    PatchApplicationRequest,
    PatchSourceRequest,
)


class InMemoryInventory(InventoryApi):
    """Keep inventory records in local memory.

    Useful for tests or local dry runs against a real cloud account. Every
    call is appended to ``calls`` as ``(operation, args)``; operations listed
    in ``failures`` raise :class:`ReportingError` instead.
    """

    def __init__(
        self,
        credentials: Optional[Dict[str, InternalAuthentication]] = None,
        failures: Optional[Dict[str, int]] = None,
    ) -> None:
        self.credentials: Dict[str, InternalAuthentication] = dict(credentials or {})
        self.failures: Dict[str, int] = dict(failures or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.applications: Dict[str, Dict[str, Any]] = {}
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.authentications: Dict[str, AuthenticationCreateRequest] = {}
        self.application_authentications: List[Tuple[str, str]] = []
        self.availability_checks: List[str] = []

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def _record(self, operation: str, **args: Any) -> None:
        self.calls.append((operation, args))
        status = self.failures.get(operation)
        if status is not None:
            raise ReportingError(operation, status, "simulated failure")

    # ------------------------------------------------------------------
    async def get_internal_authentication(
        self, auth: AuthenticationData, authentication_id: str
    ) -> InternalAuthentication:
        self._record("get_internal_authentication", authentication_id=authentication_id)
        credential = self.credentials.get(authentication_id)
        if credential is None:
            raise ReportingError("get_internal_authentication", 404, "not found")
        return credential

    async def patch_application(
        self, auth: AuthenticationData, application_id: str, body: PatchApplicationRequest
    ) -> None:
        self._record("patch_application", application_id=application_id, body=body)
        record = self.applications.setdefault(application_id, {})
        record.update(body.model_dump(exclude_none=True))

    async def patch_source(
        self, auth: AuthenticationData, source_id: str, body: PatchSourceRequest
    ) -> None:
        self._record("patch_source", source_id=source_id, body=body)
        self.sources.setdefault(source_id, {}).update(body.model_dump(exclude_none=True))

    async def create_authentication(
        self, auth: AuthenticationData, body: AuthenticationCreateRequest
    ) -> AuthenticationResponse:
        self._record("create_authentication", body=body)
        auth_id = str(len(self.authentications) + 1)
        self.authentications[auth_id] = body
        return AuthenticationResponse(
            id=auth_id,
            authtype=body.authtype,
            username=body.username,
            resource_type=body.resource_type,
            resource_id=None if body.resource_id is None else str(body.resource_id),
        )

    async def create_application_authentication(
        self, auth: AuthenticationData, body: ApplicationAuthenticationCreateRequest
    ) -> None:
        self._record("create_application_authentication", body=body)
        self.application_authentications.append(
            (str(body.application_id), str(body.authentication_id))
        )

    async def trigger_availability_check(
        self, auth: AuthenticationData, source_id: str
    ) -> None:
        self._record("trigger_availability_check", source_id=source_id)
        self.availability_checks.append(source_id)
