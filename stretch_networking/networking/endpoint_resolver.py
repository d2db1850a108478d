"""
Endpoint resolution: stable cluster address plus the assigned node port.
"""

from typing import Tuple

from ..exceptions import ExposureNotFoundError, NoStableAddressError, PortNotAssignedError
from ..gateway.registry import GatewayRegistry
from ..models.base import Reconciliation
from ..models.endpoint import Endpoint
from ..utils.logging import get_logger
from .address_cache import StableAddressCache
from .exposure_manager import ExposureResourceManager

logger = get_logger(__name__)


class EndpointResolver:
    """Resolves the externally routable endpoint of one pod port.

    Endpoints are recomputed from the current exposure on every call.
    """

    def __init__(self, cache: StableAddressCache, gateways: GatewayRegistry,
                 exposures: ExposureResourceManager):
        self.cache = cache
        self.gateways = gateways
        self.exposures = exposures

    def stable_address(self, cluster_id: str) -> Tuple[str, str, bool]:
        """Get the address to use for a cluster.

        Falls back to the local cluster's address when the cluster has none.
        The fallback may hide a failed or missing initialization, so it is
        logged and reported rather than applied silently.

        Returns:
            ``(address, address_cluster_id, used_fallback)``

        Raises:
            NoStableAddressError: If neither address is cached
        """
        address = self.cache.lookup(cluster_id)
        if address is not None:
            return address, cluster_id, False

        local_cluster_id = self.gateways.local_cluster_id
        address = self.cache.lookup(local_cluster_id)
        if address is None:
            raise NoStableAddressError(cluster_id, local_cluster_id)

        logger.warning(f"No stable node IP cached for cluster {cluster_id}, falling back to "
                       f"{address} of local cluster {local_cluster_id}")
        return address, local_cluster_id, True

    async def resolve(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                      pod_name: str, port_name: str) -> Endpoint:
        """Resolve ``address:port`` for a pod port.

        Raises:
            NoStableAddressError: If no address is cached for the cluster or the local cluster
            GatewayUnavailableError: If no gateway is registered for the cluster
            ExposureNotFoundError: If the pod's exposure does not exist yet
            PortNotAssignedError: If the port is missing or has no node port yet
        """
        address, address_cluster_id, used_fallback = self.stable_address(cluster_id)

        gateway = self.gateways.require(cluster_id)
        name = self.exposures.exposure_name(pod_name)

        exposure = await gateway.get_exposure(namespace, name)
        if exposure is None:
            raise ExposureNotFoundError(cluster_id, namespace, name)

        port = exposure.get_port(port_name)
        if port is None:
            raise PortNotAssignedError(cluster_id, namespace, name, port_name, "no such port")
        if not port.is_assigned:
            raise PortNotAssignedError(cluster_id, namespace, name, port_name, "node port not assigned yet")

        endpoint = Endpoint(
            address=address,
            port=port.node_port,
            cluster_id=cluster_id,
            address_cluster_id=address_cluster_id,
            used_fallback=used_fallback
        )

        logger.debug(f"{reconciliation}: Discovered NodePort endpoint for pod {pod_name} "
                     f"in cluster {cluster_id}: {endpoint}")
        return endpoint
