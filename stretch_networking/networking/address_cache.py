"""
Stable node address discovery and caching.

A NodePort Service is reachable through every node of its cluster, so one
worker node address per cluster is enough to address all exposed pods. The
address is selected once per process lifetime and never re-evaluated: if that
node goes away, endpoints keep pointing at it until the process restarts.
Failover belongs in a different ``AddressSelectionStrategy``.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..exceptions import NoEligibleNodeError
from ..gateway.base import ClusterGateway
from ..gateway.registry import GatewayRegistry
from ..models.base import NodeAddressType
from ..models.cluster import ClusterNode
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTROL_PLANE_LABELS = (
    "node-role.kubernetes.io/master",
    "node-role.kubernetes.io/control-plane",
)

DEFAULT_ADDRESS_PREFERENCE = (
    NodeAddressType.EXTERNAL_IP.value,
    NodeAddressType.INTERNAL_IP.value,
)


@dataclass(frozen=True)
class SelectedAddress:
    """Result of address selection for one cluster."""
    address: str
    node_name: str
    address_type: str


class AddressSelectionStrategy(ABC):
    """Picks the stable address of a cluster from its node list."""

    @abstractmethod
    def select(self, cluster_id: str, nodes: Sequence[ClusterNode]) -> SelectedAddress:
        """Select one address.

        Raises:
            NoEligibleNodeError: If no node can provide an address
        """
        pass


class FirstWorkerNodeStrategy(AddressSelectionStrategy):
    """Selects the first worker node in list order that has a usable address.

    Control-plane nodes are skipped. For each candidate, address types are
    tried in preference order (external before internal by default).
    """

    def __init__(self,
                 control_plane_labels: Sequence[str] = DEFAULT_CONTROL_PLANE_LABELS,
                 preferred_address_types: Sequence[str] = DEFAULT_ADDRESS_PREFERENCE):
        self.control_plane_labels = list(control_plane_labels)
        self.preferred_address_types = list(preferred_address_types)

    def select(self, cluster_id: str, nodes: Sequence[ClusterNode]) -> SelectedAddress:
        if not nodes:
            raise NoEligibleNodeError(cluster_id, "no nodes found")

        workers = [node for node in nodes if not node.has_any_label(self.control_plane_labels)]
        if not workers:
            raise NoEligibleNodeError(cluster_id, "every node is a control-plane node", len(nodes))

        for node in workers:
            for address_type in self.preferred_address_types:
                address = node.first_address(address_type)
                if address:
                    return SelectedAddress(address, node.name, address_type)

        raise NoEligibleNodeError(
            cluster_id,
            f"no worker node has an address of type {' or '.join(self.preferred_address_types)}",
            len(nodes)
        )


class StableAddressCache:
    """Write-once cache of one stable address per cluster.

    ``initialize`` is expected to run once before any lookup. Calling it again
    only discovers clusters that have no entry yet; an entry, once set, is
    never replaced.
    """

    def __init__(self, strategy: Optional[AddressSelectionStrategy] = None):
        """Initialize an empty cache.

        Args:
            strategy: Address selection strategy (defaults to FirstWorkerNodeStrategy)
        """
        self.strategy = strategy or FirstWorkerNodeStrategy()
        self._addresses: Dict[str, SelectedAddress] = {}
        self.failures: Dict[str, Exception] = {}
        self.initialized = False

    async def initialize(self, gateways: Union[GatewayRegistry, Mapping[str, ClusterGateway]]) -> None:
        """Discover the stable address of every cluster concurrently.

        All discoveries run to completion. Successful clusters are cached even
        when others fail.

        Args:
            gateways: Registry or ``cluster id -> gateway`` mapping

        Raises:
            StretchNetworkingError: The first failure in gateway order, after
                every discovery has finished
        """
        pending = [(cluster_id, gateway) for cluster_id, gateway in self._gateway_items(gateways)
                   if cluster_id not in self._addresses]

        if not pending:
            logger.debug("All clusters already have a stable address")
            self.initialized = True
            return

        results = await asyncio.gather(
            *(self.discover(cluster_id, gateway) for cluster_id, gateway in pending),
            return_exceptions=True
        )

        first_error: Optional[BaseException] = None
        for (cluster_id, _), result in zip(pending, results):
            if isinstance(result, BaseException):
                self.failures[cluster_id] = result
                logger.error(f"Stable address discovery failed for cluster {cluster_id}: {result}")
                if first_error is None:
                    first_error = result
            else:
                self._store(cluster_id, result)

        self.initialized = True
        logger.info(f"Initialized stable node addresses: {self.snapshot()}")

        if first_error is not None:
            raise first_error

    async def discover(self, cluster_id: str, gateway: ClusterGateway) -> SelectedAddress:
        """Select the stable address of one cluster without caching it."""
        nodes = await gateway.list_nodes()
        selected = self.strategy.select(cluster_id, nodes)
        logger.info(f"Selected stable node IP {selected.address} ({selected.address_type}) "
                    f"from node {selected.node_name} in cluster {cluster_id}")
        return selected

    def lookup(self, cluster_id: str) -> Optional[str]:
        """Get the cached address of a cluster, or None."""
        selected = self._addresses.get(cluster_id)
        return selected.address if selected is not None else None

    def details(self, cluster_id: str) -> Optional[SelectedAddress]:
        """Get the node and address type behind a cached address."""
        return self._addresses.get(cluster_id)

    def snapshot(self) -> Dict[str, str]:
        """Get a copy of the cached addresses."""
        return {cluster_id: selected.address for cluster_id, selected in self._addresses.items()}

    def failed_clusters(self) -> List[str]:
        return [cluster_id for cluster_id in self.failures if cluster_id not in self._addresses]

    def __contains__(self, cluster_id: object) -> bool:
        return cluster_id in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    # Private helper methods

    def _store(self, cluster_id: str, selected: SelectedAddress) -> None:
        if cluster_id in self._addresses:
            logger.debug(f"Keeping existing stable address for cluster {cluster_id}")
            return
        self._addresses[cluster_id] = selected
        self.failures.pop(cluster_id, None)

    @staticmethod
    def _gateway_items(gateways: Union[GatewayRegistry, Mapping[str, ClusterGateway]]):
        if isinstance(gateways, GatewayRegistry):
            return gateways.items()
        return list(gateways.items())
