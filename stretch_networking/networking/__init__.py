"""
Cross-cluster endpoint resolution and networking resource lifecycle.
"""

from .address_cache import (
    AddressSelectionStrategy,
    FirstWorkerNodeStrategy,
    SelectedAddress,
    StableAddressCache
)
from .exposure_manager import ExposureResourceManager
from .endpoint_resolver import EndpointResolver
from .aggregator import ListenerVoterAggregator
from .provider import NodePortNetworkingProvider, StretchNetworkingProvider
from .factory import available_providers, create_provider

__all__ = [
    "AddressSelectionStrategy",
    "FirstWorkerNodeStrategy",
    "SelectedAddress",
    "StableAddressCache",
    "ExposureResourceManager",
    "EndpointResolver",
    "ListenerVoterAggregator",
    "NodePortNetworkingProvider",
    "StretchNetworkingProvider",
    "available_providers",
    "create_provider"
]
