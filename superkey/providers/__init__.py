"""Provider registry: maps a provider name to an orchestrator factory."""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Iterator, Mapping, Optional

from ..cloud.amazon import AmazonClient
from ..config import SuperkeyConfig
from ..constants import PROVIDER_AMAZON, PROVIDER_AZURE
from ..errors import MissingCredentialError, UnsupportedProviderError
from ..inventory.models import InternalAuthentication
from .amazon import AmazonProvider
from .azure import AzureProvider
from .base import BaseProvider
from .templates import AzureTemplateStore

ProviderFactory = Callable[[InternalAuthentication, SuperkeyConfig], BaseProvider]


class ProviderRegistry:
    """Read-only lookup table of provider factories.

    Safe to share between concurrent tasks: it is never mutated after
    construction and factories build a fresh provider on every call.
    """

    def __init__(self, factories: Mapping[str, ProviderFactory]) -> None:
        self._factories = MappingProxyType(dict(factories))

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self._factories)

    def get(self, name: str) -> ProviderFactory:
        try:
            return self._factories[name]
        except KeyError:
            raise UnsupportedProviderError(name) from None


def amazon_factory(credential: InternalAuthentication, config: SuperkeyConfig) -> BaseProvider:
    client = AmazonClient(
        credential.username or "",
        credential.password or "",
        region=config.amazon.region,
    )
    return AmazonProvider(client, forge_timeout=config.worker.forge_timeout)


def azure_factory(templates: AzureTemplateStore) -> ProviderFactory:
    def build(credential: InternalAuthentication, config: SuperkeyConfig) -> BaseProvider:
        tenant = (credential.extra.get("azure") or {}).get("tenant_id", "")
        if not tenant:
            raise MissingCredentialError(
                credential.id, credential.id, missing="azure tenant id"
            )
        return AzureProvider(
            credential.username or "",
            credential.password or "",
            tenant,
            templates,
            config=config.azure,
            forge_timeout=config.worker.forge_timeout,
        )

    return build


def default_registry(
    config: SuperkeyConfig, templates: Optional[AzureTemplateStore] = None
) -> ProviderRegistry:
    factories: Dict[str, ProviderFactory] = {
        PROVIDER_AMAZON: amazon_factory,
        PROVIDER_AZURE: azure_factory(templates or AzureTemplateStore(config.azure)),
    }
    return ProviderRegistry(factories)


__all__ = [
    "AmazonProvider",
    "AzureProvider",
    "AzureTemplateStore",
    "BaseProvider",
    "ProviderFactory",
    "ProviderRegistry",
    "amazon_factory",
    "azure_factory",
    "default_registry",
]
