"""Registry adapter layer - abstracts over the external company registry."""

from app.adapters.registry.base import AbstractRegistryClient, LookupKind
from app.adapters.registry.checko_client import CheckoClient
from app.adapters.registry.factory import create_registry_client

__all__ = [
    "AbstractRegistryClient",
    "CheckoClient",
    "LookupKind",
    "create_registry_client",
]
