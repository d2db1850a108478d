"""
Lookup of networking providers by name.
"""

from typing import Dict, List, Optional, Type

from ..config.settings import Settings
from ..exceptions import ValidationError
from .provider import NodePortNetworkingProvider, StretchNetworkingProvider

PROVIDERS: Dict[str, Type[StretchNetworkingProvider]] = {
    "nodeport": NodePortNetworkingProvider,
}


def available_providers() -> List[str]:
    """Get the names of the known providers."""
    return sorted(PROVIDERS)


def create_provider(name: Optional[str] = None, settings: Optional[Settings] = None) -> StretchNetworkingProvider:
    """Create a networking provider.

    Args:
        name: Provider name (defaults to the configured provider)
        settings: Settings to configure the provider (defaults to the global settings)

    Raises:
        ValidationError: If no provider has that name
    """
    if settings is None:
        from ..config import get_settings
        settings = get_settings()

    name = (name or settings.networking.provider).lower()
    provider_class = PROVIDERS.get(name)
    if provider_class is None:
        raise ValidationError(
            f"Unknown networking provider '{name}'. Available: {', '.join(available_providers())}",
            field="provider", value=name
        )

    return provider_class(settings.networking)
