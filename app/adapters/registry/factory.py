"""Factory for creating registry client instances."""

from app.adapters.registry.base import AbstractRegistryClient
from app.adapters.registry.checko_client import CheckoClient
from app.core.config import settings


def create_registry_client() -> AbstractRegistryClient:
    """Instantiate the registry client from configuration.

    Reads app.core.config.settings.upstream (Pydantic Settings).

    Returns:
        AbstractRegistryClient: Configured registry client instance.
    """
    upstream = settings.upstream
    return CheckoClient(
        base_url=upstream.base_url,
        company_path=upstream.company_path,
        finances_path=upstream.finances_path,
        timeout_seconds=upstream.timeout_seconds,
    )
