"""
Registry of cluster gateways keyed by cluster id.
"""

from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from ..exceptions import GatewayUnavailableError, ValidationError
from ..utils.logging import get_logger
from .base import ClusterGateway

logger = get_logger(__name__)


class GatewayRegistry:
    """Maps cluster ids to their gateways.

    One id is reserved for the local (central) cluster. Iteration follows
    registration order, local cluster first when built with ``from_mapping``.
    """

    def __init__(self, local_cluster_id: str):
        """Initialize an empty registry.

        Args:
            local_cluster_id: Reserved id of the local cluster
        """
        self.local_cluster_id = local_cluster_id
        self._gateways: Dict[str, ClusterGateway] = {}

    @classmethod
    def from_mapping(cls, gateways: Mapping[str, ClusterGateway],
                     local_cluster_id: str) -> "GatewayRegistry":
        """Build a registry from a ``cluster id -> gateway`` mapping."""
        registry = cls(local_cluster_id)

        if local_cluster_id in gateways:
            registry.register(local_cluster_id, gateways[local_cluster_id])
        else:
            logger.warning(f"No gateway provided for the local cluster '{local_cluster_id}'")

        for cluster_id, gateway in gateways.items():
            if cluster_id != local_cluster_id:
                registry.register(cluster_id, gateway)

        return registry

    def register(self, cluster_id: str, gateway: ClusterGateway) -> None:
        """Register the gateway of a cluster.

        Raises:
            ValidationError: If the cluster id is empty or already registered
        """
        if not cluster_id:
            raise ValidationError("Cluster id cannot be empty", field="cluster_id")
        if cluster_id in self._gateways:
            raise ValidationError(f"Gateway already registered for cluster {cluster_id}",
                                  field="cluster_id", value=cluster_id)

        self._gateways[cluster_id] = gateway
        logger.debug(f"Registered gateway for cluster {cluster_id}")

    def get(self, cluster_id: str) -> Optional[ClusterGateway]:
        """Get the gateway of a cluster, or None."""
        return self._gateways.get(cluster_id)

    def require(self, cluster_id: str) -> ClusterGateway:
        """Get the gateway of a cluster.

        Raises:
            GatewayUnavailableError: If no gateway is registered for the cluster
        """
        gateway = self._gateways.get(cluster_id)
        if gateway is None:
            raise GatewayUnavailableError(cluster_id, self.cluster_ids())
        return gateway

    @property
    def local_gateway(self) -> Optional[ClusterGateway]:
        return self._gateways.get(self.local_cluster_id)

    def cluster_ids(self) -> List[str]:
        return list(self._gateways)

    def items(self) -> List[Tuple[str, ClusterGateway]]:
        return list(self._gateways.items())

    async def close_all(self) -> None:
        """Close every registered gateway."""
        for cluster_id, gateway in self._gateways.items():
            try:
                await gateway.close()
            except Exception as e:
                logger.warning(f"Failed to close gateway for cluster {cluster_id}: {e}")

    def __contains__(self, cluster_id: object) -> bool:
        return cluster_id in self._gateways

    def __iter__(self) -> Iterator[str]:
        return iter(self._gateways)

    def __len__(self) -> int:
        return len(self._gateways)
