"""
Abstract base class for cluster resource gateways.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.cluster import ClusterNode
from ..models.exposure import ExposureResource


class ClusterGateway(ABC):
    """Abstract interface to one member cluster's control plane.

    The networking engine only reads nodes and manages exposure resources
    through this contract, so any backend (a real API server, an in-memory
    fake) can be substituted.
    """

    def __init__(self, cluster_id: str):
        self.cluster_id = cluster_id

    @abstractmethod
    async def list_nodes(self) -> List[ClusterNode]:
        """List the cluster's nodes in the order the control plane returns them.

        Raises:
            GatewayError: If the nodes cannot be listed
        """
        pass

    @abstractmethod
    async def upsert_exposure(self, namespace: str, name: str,
                              desired: ExposureResource) -> ExposureResource:
        """Create the exposure if absent, otherwise update it in place.

        External ports already assigned to a port name are kept. Ports may be
        unassigned in the returned resource right after creation.

        Args:
            namespace: Target namespace
            name: Exposure name
            desired: Desired state of the exposure

        Returns:
            The exposure as stored by the cluster

        Raises:
            GatewayError: If the exposure cannot be written
        """
        pass

    @abstractmethod
    async def get_exposure(self, namespace: str, name: str) -> Optional[ExposureResource]:
        """Read an exposure back.

        Returns:
            The exposure, or None if it does not exist

        Raises:
            GatewayError: If the exposure cannot be read
        """
        pass

    @abstractmethod
    async def delete_exposure(self, namespace: str, name: str) -> bool:
        """Delete an exposure.

        Returns:
            True if an exposure was deleted, False if it did not exist

        Raises:
            GatewayError: If the exposure cannot be deleted
        """
        pass

    async def close(self) -> None:
        """Close the gateway and release client resources."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cluster_id={self.cluster_id!r})"
