"""Superkey: per-tenant cloud access provisioning for the sources service."""

from .contracts import CreateRequest, DestroyRequest, ForgedApplication, InboundMessage
from .dispatch import RequestDispatcher
from .forge import Forger
from .providers import ProviderRegistry, default_registry
from .reporting import InventoryReporter
from .transports import get_transport
from .worker import SuperkeyWorker

__version__ = "0.1.0"
__all__ = [
    "CreateRequest",
    "DestroyRequest",
    "ForgedApplication",
    "InboundMessage",
    "Forger",
    "InventoryReporter",
    "ProviderRegistry",
    "RequestDispatcher",
    "SuperkeyWorker",
    "default_registry",
    "get_transport",
]
