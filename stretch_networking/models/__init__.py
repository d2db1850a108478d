"""Data models for the stretch cluster networking engine."""

from .base import NodeAddressType, Reconciliation
from .cluster import ClusterNode, NodeAddress
from .exposure import ExposurePort, ExposureResource
from .endpoint import Endpoint, ListenerEntry, VoterEntry, ControllerPodInfo

__all__ = [
    "NodeAddressType",
    "Reconciliation",
    "ClusterNode",
    "NodeAddress",
    "ExposurePort",
    "ExposureResource",
    "Endpoint",
    "ListenerEntry",
    "VoterEntry",
    "ControllerPodInfo",
]
