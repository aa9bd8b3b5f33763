"""Protocol for the inventory service operations the worker relies on."""

from __future__ import annotations

from typing import Protocol

from .models import (
    ApplicationAuthenticationCreateRequest,
    AuthenticationCreateRequest,
    AuthenticationData,
    AuthenticationResponse,
    InternalAuthentication,
    PatchApplicationRequest,
    PatchSourceRequest,
)


class InventoryApi(Protocol):
    """Operations against the inventory service (system of record)."""

    async def get_internal_authentication(
        self, auth: AuthenticationData, authentication_id: str
    ) -> InternalAuthentication:
        """Fetch an authentication with its secret exposed."""

    async def patch_application(
        self, auth: AuthenticationData, application_id: str, body: PatchApplicationRequest
    ) -> None:
        """Update an application."""

    async def patch_source(
        self, auth: AuthenticationData, source_id: str, body: PatchSourceRequest
    ) -> None:
        """Update a source."""

    async def create_authentication(
        self, auth: AuthenticationData, body: AuthenticationCreateRequest
    ) -> AuthenticationResponse:
        """Create an authentication record."""

    async def create_application_authentication(
        self, auth: AuthenticationData, body: ApplicationAuthenticationCreateRequest
    ) -> None:
        """Link an authentication to an application."""

    async def trigger_availability_check(
        self, auth: AuthenticationData, source_id: str
    ) -> None:
        """Ask the inventory service to re-check a source."""
