"""
Stretch cluster networking providers.

A provider is what the stretch cluster reconciliation loop talks to: it is
initialized once with the gateways of every member cluster, then asked to
expose pods and to render their listener and voter configuration.
"""

from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from ..config.settings import NetworkingConfig
from ..gateway.base import ClusterGateway
from ..gateway.registry import GatewayRegistry
from ..models.base import Reconciliation
from ..models.endpoint import ControllerPodInfo, Endpoint
from ..models.exposure import ExposureResource
from ..utils.logging import LogContext, get_logger, log_performance, reconciliation_scope
from .address_cache import AddressSelectionStrategy, FirstWorkerNodeStrategy, StableAddressCache
from .aggregator import ListenerVoterAggregator
from .endpoint_resolver import EndpointResolver
from .exposure_manager import ExposureResourceManager

logger = get_logger(__name__)

ControllerPods = Sequence[Union[ControllerPodInfo, Tuple[int, str, str]]]


class StretchNetworkingProvider(ABC):
    """Interface of a cross-cluster networking provider."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used to select it in configuration."""
        pass

    @abstractmethod
    async def initialize(self, gateways: Union[GatewayRegistry, Mapping[str, ClusterGateway]]) -> None:
        """Prepare the provider; called once at process start."""
        pass

    @abstractmethod
    async def ensure_exposure(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                              pod_name: str, ports: Mapping[str, int]) -> ExposureResource:
        """Create or update the networking resources of a pod."""
        pass

    @abstractmethod
    async def remove_exposure(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                              pod_name: str) -> bool:
        """Delete the networking resources of a pod."""
        pass

    @abstractmethod
    async def resolve_endpoint(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                               pod_name: str, port_name: str) -> Endpoint:
        """Resolve the endpoint of one pod port."""
        pass

    @abstractmethod
    def service_dns_name(self, namespace: str, service_name: str, cluster_id: str) -> str:
        pass

    @abstractmethod
    def pod_dns_name(self, namespace: str, service_name: str, pod_name: str, cluster_id: str) -> str:
        pass

    @abstractmethod
    async def build_advertised_listeners(self, reconciliation: Reconciliation, cluster_id: str,
                                         namespace: str, pod_name: str,
                                         listeners: Mapping[str, str]) -> str:
        """Render the ``advertised.listeners`` value of a pod."""
        pass

    @abstractmethod
    async def build_quorum_voters(self, reconciliation: Reconciliation, namespace: str,
                                  controller_pods: ControllerPods,
                                  replication_port_name: str) -> str:
        """Render the ``controller.quorum.voters`` value."""
        pass


class NodePortNetworkingProvider(StretchNetworkingProvider):
    """Exposes each pod with its own NodePort Service.

    Endpoints are one stable node address per cluster plus the node port
    assigned to the pod's Service.
    """

    def __init__(self,
                 config: Optional[NetworkingConfig] = None,
                 strategy: Optional[AddressSelectionStrategy] = None):
        """Initialize the provider.

        Args:
            config: Networking settings
            strategy: Stable address selection strategy (defaults to the first
                worker node, using the configured labels and address types)
        """
        self.config = config or NetworkingConfig()
        self.gateways = GatewayRegistry(self.config.local_cluster_id)
        self.cache = StableAddressCache(strategy or FirstWorkerNodeStrategy(
            control_plane_labels=self.config.control_plane_role_labels,
            preferred_address_types=self.config.preferred_address_types
        ))
        self.exposures = ExposureResourceManager(self.gateways, self.config)
        self.resolver = EndpointResolver(self.cache, self.gateways, self.exposures)
        self.aggregator = ListenerVoterAggregator(self.resolver)

    @property
    def name(self) -> str:
        return "nodeport"

    @property
    def initialized(self) -> bool:
        return self.cache.initialized

    async def initialize(self, gateways: Union[GatewayRegistry, Mapping[str, ClusterGateway]]) -> None:
        """Register the gateways and discover one stable address per cluster.

        Gateways already registered by an earlier call are kept; clusters that
        already have an address are not discovered again.

        Raises:
            StretchNetworkingError: The first discovery failure, after every
                cluster has been tried
        """
        items = gateways.items() if isinstance(gateways, GatewayRegistry) \
            else GatewayRegistry.from_mapping(gateways, self.config.local_cluster_id).items()

        for cluster_id, gateway in items:
            if cluster_id not in self.gateways:
                self.gateways.register(cluster_id, gateway)

        with LogContext("initialize", logger_name=__name__, clusters=self.gateways.cluster_ids()):
            await self.cache.initialize(self.gateways)

        logger.info(f"Initialized NodePort networking provider with stable node IPs: {self.cache.snapshot()}")

    @log_performance("ensure_exposure")
    async def ensure_exposure(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                              pod_name: str, ports: Mapping[str, int]) -> ExposureResource:
        with reconciliation_scope(**reconciliation.as_log_context(cluster_id)):
            return await self.exposures.ensure(reconciliation, cluster_id, namespace, pod_name, ports)

    @log_performance("remove_exposure")
    async def remove_exposure(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                              pod_name: str) -> bool:
        with reconciliation_scope(**reconciliation.as_log_context(cluster_id)):
            return await self.exposures.remove(reconciliation, cluster_id, namespace, pod_name)

    async def resolve_endpoint(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                               pod_name: str, port_name: str) -> Endpoint:
        with reconciliation_scope(**reconciliation.as_log_context(cluster_id)):
            return await self.resolver.resolve(reconciliation, cluster_id, namespace, pod_name, port_name)

    def service_dns_name(self, namespace: str, service_name: str, cluster_id: str) -> str:
        # NodePort addressing does not use DNS across clusters; this is the local name
        return f"{service_name}.{namespace}.svc"

    def pod_dns_name(self, namespace: str, service_name: str, pod_name: str, cluster_id: str) -> str:
        return f"{pod_name}.{service_name}.{namespace}.svc"

    @log_performance("build_advertised_listeners")
    async def build_advertised_listeners(self, reconciliation: Reconciliation, cluster_id: str,
                                         namespace: str, pod_name: str,
                                         listeners: Mapping[str, str]) -> str:
        with reconciliation_scope(**reconciliation.as_log_context(cluster_id)):
            return await self.aggregator.build_advertised_listeners(
                reconciliation, cluster_id, namespace, pod_name, listeners
            )

    @log_performance("build_quorum_voters")
    async def build_quorum_voters(self, reconciliation: Reconciliation, namespace: str,
                                  controller_pods: ControllerPods,
                                  replication_port_name: str) -> str:
        with reconciliation_scope(**reconciliation.as_log_context()):
            return await self.aggregator.build_quorum_voters(
                reconciliation, namespace, controller_pods, replication_port_name
            )

    def address_map(self) -> Dict[str, str]:
        """Get a copy of the cached stable addresses."""
        return self.cache.snapshot()

    async def close(self) -> None:
        """Close every registered gateway."""
        await self.gateways.close_all()
