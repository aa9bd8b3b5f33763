"""Reports forge outcomes back to the inventory service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .config import SuperkeyConfig
from .constants import AVAILABILITY_UNAVAILABLE, PROVIDER_AMAZON, PROVIDER_AZURE
from .contracts import CreateRequest, ForgedApplication
from .inventory import InventoryApi
from .inventory.models import (
    ApplicationAuthenticationCreateRequest,
    PatchApplicationRequest,
    PatchSourceRequest,
)
from .log import request_logger

logger = logging.getLogger(__name__)

PROVIDER_DISPLAY_NAMES = {PROVIDER_AMAZON: "Amazon", PROVIDER_AZURE: "Azure"}


def unavailable_reason(provider: str, error: BaseException) -> str:
    display = PROVIDER_DISPLAY_NAMES.get(provider, provider)
    return (
        f"Resource Creation error: failed to create resources in {display}. "
        f"Error: {error}"
    )


class InventoryReporter:
    """Delivers forged applications and failures to the inventory service."""

    def __init__(
        self,
        inventory: InventoryApi,
        config: SuperkeyConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._inventory = inventory
        self._config = config
        self._sleep = sleep

    async def deliver(self, forged: ForgedApplication) -> None:
        """Store the superkey data, create the authentication and ask for a check.

        Any failure raises :class:`~superkey.errors.ReportingError`; the caller
        owns tearing the resources down.
        """
        if forged.product is None:
            raise ValueError("cannot deliver an application without a product")

        request = forged.request
        auth = request.auth_data
        log = request_logger(
            logger,
            tenant_id=request.tenant_id,
            source_id=request.source_id,
            application_id=request.application_id,
        )

        wait = self._config.amazon.iam_wait_seconds
        if request.provider == PROVIDER_AMAZON and wait > 0:
            log.debug("Sleeping to prevent IAM race condition")
            await self._sleep(wait)

        await self._inventory.patch_application(
            auth,
            request.application_id,
            PatchApplicationRequest(extra=forged.product.extra),
        )
        log.info("Superkey data stored in inventory")

        auth_payload = forged.product.auth_payload.model_copy(deep=True)
        external_id = request.extra.get("external_id")
        if external_id is not None:
            auth_payload.extra["external_id"] = external_id

        created = await self._inventory.create_authentication(auth, auth_payload)
        await self._inventory.create_application_authentication(
            auth,
            ApplicationAuthenticationCreateRequest(
                application_id=request.application_id,
                authentication_id=created.id,
            ),
        )
        log.info("Authentications created in inventory")

        await self._inventory.trigger_availability_check(auth, forged.product.source_id)
        log.info("Availability check requested in inventory")

    async def mark_unavailable(
        self,
        request: CreateRequest,
        error: BaseException,
        forged: Optional[ForgedApplication] = None,
    ) -> None:
        """Mark the application and its source as unavailable.

        When resources were at least partially created their record is kept
        on the application so the inventory service knows what was attempted.
        """
        auth = request.auth_data
        extra = forged.extra_payload() if forged is not None else {}
        log = request_logger(
            logger, tenant_id=request.tenant_id, source_id=request.source_id
        )

        await self._inventory.patch_application(
            auth,
            request.application_id,
            PatchApplicationRequest(
                availability_status=AVAILABILITY_UNAVAILABLE,
                availability_status_error=unavailable_reason(request.provider, error),
                extra=extra,
            ),
        )
        log.info('Application marked as "unavailable"')

        await self._inventory.patch_source(
            auth,
            request.source_id,
            PatchSourceRequest(availability_status=AVAILABILITY_UNAVAILABLE),
        )
        log.info('Source marked as "unavailable"')
