"""Retry-protected HTTP client for the inventory service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..config import InventoryConfig
from ..constants import (
    ACCOUNT_NUMBER_HEADER,
    HEADER_IDENTITY,
    ORG_ID_HEADER,
    PSK_HEADER,
)
from ..errors import ReportingError
from ..utils.retry import RetryPolicy, is_retryable_status, is_success, schedule_retry
from .base import InventoryApi
from .identity import encode_identity
from .models import (
    ApplicationAuthenticationCreateRequest,
    AuthenticationCreateRequest,
    AuthenticationData,
    AuthenticationResponse,
    InternalAuthentication,
    PatchApplicationRequest,
    PatchSourceRequest,
)

logger = logging.getLogger(__name__)


class InventoryClient(InventoryApi):
    """Talks to the inventory service over HTTP.

    Every call is retried up to ``max_attempts`` times with a fixed delay.
    Transport errors and non-2xx responses are retried, except 4xx responses
    other than 408 and 429 which abort immediately. Response bodies are read
    and closed on every attempt so the connection can be reused.
    """

    def __init__(
        self,
        config: InventoryConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._retry = RetryPolicy(config.max_attempts, config.retry_delay)
        self.base_url = f"{config.base_url}/api/sources/v3.1"
        self.internal_url = f"{config.base_url}/internal/v2.0"

    # ------------------------------------------------------------------
    async def get_internal_authentication(
        self, auth: AuthenticationData, authentication_id: str
    ) -> InternalAuthentication:
        url = f"{self.internal_url}/authentications/{quote(authentication_id, safe='')}"
        data = await self._send(
            "get_internal_authentication",
            "GET",
            url,
            auth,
            params={"expose_encrypted_attribute[]": "password"},
        )
        return self._parse("get_internal_authentication", data, InternalAuthentication)

    async def patch_application(
        self, auth: AuthenticationData, application_id: str, body: PatchApplicationRequest
    ) -> None:
        url = f"{self.base_url}/applications/{quote(application_id, safe='')}"
        await self._send("patch_application", "PATCH", url, auth, body)

    async def patch_source(
        self, auth: AuthenticationData, source_id: str, body: PatchSourceRequest
    ) -> None:
        url = f"{self.base_url}/sources/{quote(source_id, safe='')}"
        await self._send("patch_source", "PATCH", url, auth, body)

    async def create_authentication(
        self, auth: AuthenticationData, body: AuthenticationCreateRequest
    ) -> AuthenticationResponse:
        url = f"{self.base_url}/authentications"
        data = await self._send("create_authentication", "POST", url, auth, body)
        return self._parse("create_authentication", data, AuthenticationResponse)

    async def create_application_authentication(
        self, auth: AuthenticationData, body: ApplicationAuthenticationCreateRequest
    ) -> None:
        url = f"{self.base_url}/application_authentications"
        await self._send("create_application_authentication", "POST", url, auth, body)

    async def trigger_availability_check(
        self, auth: AuthenticationData, source_id: str
    ) -> None:
        url = f"{self.base_url}/sources/{quote(source_id, safe='')}/check_availability"
        await self._send("trigger_availability_check", "POST", url, auth)

    # ------------------------------------------------------------------
    def _headers(self, auth: AuthenticationData) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.psk:
            headers[PSK_HEADER] = self._config.psk
            if auth.account_number:
                headers[ACCOUNT_NUMBER_HEADER] = auth.account_number
            if auth.org_id:
                headers[ORG_ID_HEADER] = auth.org_id
        else:
            headers[HEADER_IDENTITY] = auth.identity_header or encode_identity(
                auth.account_number, auth.org_id
            )
        return headers

    @staticmethod
    def _parse(operation: str, data: bytes, model: type) -> Any:
        try:
            return model.model_validate_json(data)
        except PydanticValidationError as exc:
            raise ReportingError(
                operation,
                body=data.decode(errors="replace"),
                cause=exc,
                detail=f"failed to unmarshal response body: {exc}",
            ) from exc

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        auth: AuthenticationData,
        body: Optional[BaseModel] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> bytes:
        # Serialize once; every attempt gets a fresh request over these bytes.
        content = body.model_dump_json(exclude_none=True).encode() if body else None
        headers = self._headers(auth)

        last_status: Optional[int] = None
        last_body = ""
        last_error: Optional[BaseException] = None

        async with httpx.AsyncClient(
            timeout=self._config.timeout, transport=self._transport
        ) as client:
            for attempt in self._retry.attempts():
                request = client.build_request(
                    method, url, content=content, headers=headers, params=params
                )
                response: Optional[httpx.Response] = None
                try:
                    response = await client.send(request, stream=True)
                    data = await response.aread()
                except httpx.TransportError as exc:
                    last_status, last_body, last_error = None, "", exc
                    logger.warning(
                        f"{operation}: failed to send request "
                        f"(attempt {attempt}/{self._retry.max_attempts}): {exc}"
                    )
                else:
                    if is_success(response.status_code):
                        return data
                    last_status = response.status_code
                    last_body = data.decode(errors="replace")
                    last_error = None
                    if not is_retryable_status(response.status_code):
                        raise ReportingError(operation, last_status, last_body)
                    logger.debug(
                        f'{operation}: unexpected status code. Want "2xx", got '
                        f'"{last_status}" (attempt {attempt}/{self._retry.max_attempts})'
                    )
                finally:
                    if response is not None:
                        await response.aclose()

                if not self._retry.is_last(attempt):
                    await schedule_retry(self._retry.delay)

        raise ReportingError(operation, last_status, last_body, cause=last_error)
