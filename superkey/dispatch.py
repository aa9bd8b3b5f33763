"""Request dispatcher for the superkey worker."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .config import SuperkeyConfig
from .constants import EVENT_CREATE, EVENT_DESTROY
from .contracts import CreateRequest, DestroyRequest, ForgedApplication, InboundMessage
from .errors import SuperkeyError, ValidationError
from .forge import Forger
from .log import RequestLogAdapter, request_logger
from .reporting import InventoryReporter

logger = logging.getLogger(__name__)

Request = Union[CreateRequest, DestroyRequest]


class RequestDispatcher:
    """Decodes inbound messages and runs the create or destroy flow."""

    def __init__(
        self,
        forger: Forger,
        reporter: InventoryReporter,
        config: SuperkeyConfig,
    ) -> None:
        self._forger = forger
        self._reporter = reporter
        self._config = config

    def decode(self, message: InboundMessage) -> Request:
        """Turn ``message`` into a request, carrying its identity headers along."""
        identity, org_id = message.identity_header, message.org_id_header
        if not identity and not org_id:
            raise ValidationError("no identity or org id header found")

        event_type = message.event_type
        if event_type == EVENT_CREATE:
            model: type = CreateRequest
        elif event_type == EVENT_DESTROY:
            model = DestroyRequest
        else:
            raise ValidationError(f'unknown event type "{event_type}"')

        try:
            request = model.model_validate_json(message.value)
        except PydanticValidationError as exc:
            raise ValidationError(f'error parsing "{event_type}" request: {exc}') from exc

        request.identity_header = identity
        request.org_id_header = org_id
        return request

    async def dispatch(self, message: InboundMessage) -> None:
        try:
            request = self.decode(message)
        except ValidationError as exc:
            logger.error(
                f"Skipping superkey request (org_id={message.org_id_header!r}): {exc}"
            )
            return

        if isinstance(request, CreateRequest):
            await self.create_resources(request)
        else:
            await self.destroy_resources(request)

    async def create_resources(self, request: CreateRequest) -> Optional[ForgedApplication]:
        """Forge ``request`` and report the outcome.

        Any failure, while forging or while reporting, tears down what was
        created and marks the application unavailable.
        """
        log = request_logger(
            logger,
            tenant_id=request.tenant_id,
            source_id=request.source_id,
            application_id=request.application_id,
            application_type=request.application_type,
        )
        if self._config.worker.disable_creation:
            log.info(f'Skipping "{EVENT_CREATE}" request: resource creation is disabled')
            return None

        log.info(f'Processing "{EVENT_CREATE}" request')
        forged: Optional[ForgedApplication] = None
        try:
            forged = await self._forger.forge(request)
            error: Optional[BaseException] = forged.error
        except SuperkeyError as exc:
            error = exc

        if error is None and forged is not None:
            try:
                await self._reporter.deliver(forged)
            except SuperkeyError as exc:
                log.error(f"Error while creating or updating the resources in inventory: {exc}")
                forged.error = exc
                error = exc

        if error is not None:
            log.error(f"Tearing down superkey request due to an error: {error}")
            await self._tear_down(forged, log)
            await self._mark_unavailable(request, error, forged, log)
        else:
            log.info(f'Finished processing "{EVENT_CREATE}" request')
        return forged

    async def destroy_resources(self, request: DestroyRequest) -> List[Exception]:
        log = request_logger(logger, tenant_id=request.tenant_id, guid=request.guid)
        if self._config.worker.disable_deletion:
            log.info(f'Skipping "{EVENT_DESTROY}" request: resource deletion is disabled')
            return []

        log.info(f'Processing "{EVENT_DESTROY}" request')
        errors = await self._tear_down(ForgedApplication.reconstruct(request), log)
        log.info("Finished destroying resources")
        return errors

    async def _tear_down(
        self, forged: Optional[ForgedApplication], log: RequestLogAdapter
    ) -> List[Exception]:
        errors = await self._forger.tear_down(forged)
        for err in errors:
            log.error(f"Unable to tear down application: {err}")
        return errors

    async def _mark_unavailable(
        self,
        request: CreateRequest,
        error: BaseException,
        forged: Optional[ForgedApplication],
        log: RequestLogAdapter,
    ) -> None:
        try:
            await self._reporter.mark_unavailable(request, error, forged)
        except SuperkeyError as exc:
            log.error(
                f'Error while marking the source and application as "unavailable": {exc}'
            )
