"""
In-memory cluster gateway.

Behaves like a small API server: it stores nodes and exposure resources,
allocates node ports from a range and keeps them stable across updates. Used
by the test suite and for simulating stretch clusters locally.
"""

import asyncio
from collections import Counter
from typing import Dict, List, Optional, Tuple

from ..config.settings import GatewayConfig
from ..exceptions import GatewayError, ValidationError
from ..models.cluster import ClusterNode
from ..models.exposure import ExposureResource
from ..utils.logging import get_logger
from .base import ClusterGateway
from .port_allocator import NodePortAllocator, PortRange

logger = get_logger(__name__)


class InMemoryClusterGateway(ClusterGateway):
    """Gateway backed by dictionaries instead of a control plane."""

    def __init__(self,
                 cluster_id: str,
                 nodes: Optional[List[ClusterNode]] = None,
                 port_range: Optional[PortRange] = None,
                 assign_node_ports: bool = True):
        """Initialize the gateway.

        Args:
            cluster_id: Cluster identifier
            nodes: Nodes returned by ``list_nodes``, in order
            port_range: NodePort range (defaults to 30000-32767)
            assign_node_ports: Assign node ports on upsert; when False ports stay
                pending until ``assign_pending_ports`` is called
        """
        super().__init__(cluster_id)
        self.nodes: List[ClusterNode] = list(nodes or [])
        self.allocator = NodePortAllocator(port_range or PortRange(30000, 32767))
        self.assign_node_ports = assign_node_ports

        self._exposures: Dict[Tuple[str, str], ExposureResource] = {}
        self._failures: Dict[str, Exception] = {}
        self._lock = asyncio.Lock()

        self.calls: Counter = Counter()
        self.closed = False

    @classmethod
    def from_config(cls, cluster_id: str, nodes: Optional[List[ClusterNode]] = None,
                    gateway_config: Optional[GatewayConfig] = None) -> "InMemoryClusterGateway":
        """Create a gateway using the configured NodePort range."""
        gateway_config = gateway_config or GatewayConfig()
        return cls(
            cluster_id,
            nodes=nodes,
            port_range=PortRange(gateway_config.node_port_range_start, gateway_config.node_port_range_end)
        )

    # Test helpers

    def fail_on(self, operation: str, error: Optional[Exception] = None) -> None:
        """Make an operation raise until ``clear_failures`` is called."""
        self._failures[operation] = error or GatewayError(
            self.cluster_id, operation, "injected failure", status=500, retryable=True
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def assign_pending_ports(self) -> None:
        """Assign node ports to every port that has none yet."""
        for key, exposure in self._exposures.items():
            self._exposures[key] = self._with_node_ports(exposure, exposure, force=True)

    def exposures(self) -> List[ExposureResource]:
        return [exposure.model_copy(deep=True) for exposure in self._exposures.values()]

    # ClusterGateway

    async def list_nodes(self) -> List[ClusterNode]:
        self._record("list_nodes")
        return [node.model_copy(deep=True) for node in self.nodes]

    async def upsert_exposure(self, namespace: str, name: str,
                              desired: ExposureResource) -> ExposureResource:
        self._record("upsert_exposure")

        async with self._lock:
            key = (namespace, name)
            existing = self._exposures.get(key)
            stored = desired.model_copy(deep=True, update={"name": name, "namespace": namespace})
            stored = self._with_node_ports(stored, existing, force=self.assign_node_ports)

            if existing is not None:
                kept = {port.node_port for port in stored.ports}
                self.allocator.release_all([port.node_port for port in existing.ports
                                            if port.node_port not in kept])
                logger.debug(f"Updated exposure {namespace}/{name} in cluster {self.cluster_id}")
            else:
                logger.debug(f"Created exposure {namespace}/{name} in cluster {self.cluster_id}")

            self._exposures[key] = stored
            return stored.model_copy(deep=True)

    async def get_exposure(self, namespace: str, name: str) -> Optional[ExposureResource]:
        self._record("get_exposure")
        exposure = self._exposures.get((namespace, name))
        return exposure.model_copy(deep=True) if exposure is not None else None

    async def delete_exposure(self, namespace: str, name: str) -> bool:
        self._record("delete_exposure")

        async with self._lock:
            exposure = self._exposures.pop((namespace, name), None)
            if exposure is None:
                return False

            self.allocator.release_all([port.node_port for port in exposure.ports])
            logger.debug(f"Deleted exposure {namespace}/{name} in cluster {self.cluster_id}")
            return True

    async def close(self) -> None:
        self.closed = True

    # Private helper methods

    def _record(self, operation: str) -> None:
        self.calls[operation] += 1
        error = self._failures.get(operation)
        if error is not None:
            raise error

    def _with_node_ports(self, exposure: ExposureResource,
                         existing: Optional[ExposureResource],
                         force: bool) -> ExposureResource:
        """Carry over node ports from ``existing`` and allocate the missing ones."""
        ports = []
        allocated = []
        try:
            for port in exposure.ports:
                node_port = port.node_port
                previous = existing.get_port(port.name) if existing is not None else None

                if previous is not None and previous.node_port:
                    node_port = previous.node_port
                elif force or node_port is not None:
                    node_port = self.allocator.allocate(preferred=node_port)
                    allocated.append(node_port)

                ports.append(port.model_copy(update={"node_port": node_port}))
        except ValidationError:
            self.allocator.release_all(allocated)
            raise

        return exposure.model_copy(update={"ports": ports})
