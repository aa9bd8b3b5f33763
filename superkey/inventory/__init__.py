"""Inventory service access for the superkey worker."""

from __future__ import annotations

from typing import Optional

from ..config import SuperkeyConfig, load_config
from .base import InventoryApi
from .client import InventoryClient
from .inmemory import InMemoryInventory
from .models import (
    ApplicationAuthenticationCreateRequest,
    AuthenticationCreateRequest,
    AuthenticationData,
    AuthenticationResponse,
    InternalAuthentication,
    PatchApplicationRequest,
    PatchSourceRequest,
)


def get_inventory_client(config: Optional[SuperkeyConfig] = None) -> InventoryApi:
    """Factory function returning an HTTP client for the configured service."""
    config = config or load_config()
    return InventoryClient(config.inventory)


__all__ = [
    "ApplicationAuthenticationCreateRequest",
    "AuthenticationCreateRequest",
    "AuthenticationData",
    "AuthenticationResponse",
    "InMemoryInventory",
    "InternalAuthentication",
    "InventoryApi",
    "InventoryClient",
    "PatchApplicationRequest",
    "PatchSourceRequest",
    "get_inventory_client",
]
