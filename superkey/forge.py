"""Entry points for forging and tearing down tenant applications."""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import SuperkeyConfig
from .contracts import CreateRequest, ForgedApplication
from .errors import MissingCredentialError, SuperkeyError
from .inventory import InventoryApi
from .inventory.models import AuthenticationData
from .providers import BaseProvider, ProviderRegistry

logger = logging.getLogger(__name__)


class Forger:
    """Selects a provider for a request and drives it.

    Providers are built fresh for every request from the tenant's own
    credential, fetched from the inventory service.
    """

    def __init__(
        self,
        config: SuperkeyConfig,
        inventory: InventoryApi,
        registry: ProviderRegistry,
    ) -> None:
        self._config = config
        self._inventory = inventory
        self._registry = registry

    async def provider_for(
        self, provider_name: str, credential_ref: str, auth: AuthenticationData
    ) -> BaseProvider:
        """Build the provider for ``provider_name`` using the referenced credential.

        Raises:
            UnsupportedProviderError: before any external call when the name is unknown.
            ReportingError: when the credential cannot be fetched.
            MissingCredentialError: when the credential has no username or password.
        """
        factory = self._registry.get(provider_name)

        credential = await self._inventory.get_internal_authentication(auth, credential_ref)
        if not credential.username or not credential.password:
            raise MissingCredentialError(credential_ref, credential.id)

        return factory(credential, self._config)

    async def forge(self, request: CreateRequest) -> ForgedApplication:
        """Forge ``request``.

        Errors raised before any cloud call propagate. Errors during forging
        are set on the returned application, which keeps the steps that did
        complete.
        """
        provider = await self.provider_for(
            request.provider, request.super_key, request.auth_data
        )
        logger.debug(f"Forging {request.provider} request for tenant {request.tenant_id}")
        return await provider.forge_application(request)

    async def tear_down(self, forged: Optional[ForgedApplication]) -> List[Exception]:
        """Tear down ``forged``, returning every error encountered."""
        if forged is None:
            return []

        # Applications rebuilt from a destroy request have no provider yet.
        if forged.client is None:
            try:
                forged.client = await self.provider_for(
                    forged.request.provider,
                    forged.request.super_key,
                    forged.request.auth_data,
                )
            except SuperkeyError as exc:
                return [exc]

        return await forged.client.tear_down(forged)
