"""
Cluster resource gateways: the per-cluster control plane contract and its implementations.
"""

from .base import ClusterGateway
from .registry import GatewayRegistry
from .memory import InMemoryClusterGateway

__all__ = [
    "ClusterGateway",
    "GatewayRegistry",
    "InMemoryClusterGateway"
]
