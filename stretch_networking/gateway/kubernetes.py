"""
Kubernetes cluster gateway.

Lists nodes and manages per-pod NodePort Services through the Kubernetes API
using ``kubernetes_asyncio``. Request timeouts and retries of transient API
failures live here, not in the networking engine.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from kubernetes_asyncio import client, config
from kubernetes_asyncio.client.rest import ApiException

from ..config.settings import ClusterConnectionConfig, GatewayConfig
from ..exceptions import GatewayError, OperationTimeoutError
from ..models.cluster import ClusterNode, NodeAddress
from ..models.exposure import ExposurePort, ExposureResource
from ..utils.logging import get_logger
from ..utils.retry import RetryConfig, retry_async_operation
from .base import ClusterGateway
from .registry import GatewayRegistry

logger = get_logger(__name__)

RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


class KubernetesClusterGateway(ClusterGateway):
    """Gateway backed by a Kubernetes API server."""

    def __init__(self,
                 cluster_id: str,
                 api_client: client.ApiClient,
                 gateway_config: Optional[GatewayConfig] = None):
        """Initialize the gateway.

        Args:
            cluster_id: Cluster identifier
            api_client: Configured API client for the cluster
            gateway_config: Timeout and retry settings
        """
        super().__init__(cluster_id)
        self.gateway_config = gateway_config or GatewayConfig()
        self._api_client = api_client
        self._core_v1_api = client.CoreV1Api(api_client)
        self._retry_config = RetryConfig(
            max_attempts=self.gateway_config.max_retries + 1,
            base_delay=self.gateway_config.retry_delay,
            max_delay=self.gateway_config.max_retry_delay
        )

    @classmethod
    async def connect(cls, connection: ClusterConnectionConfig,
                      gateway_config: Optional[GatewayConfig] = None) -> "KubernetesClusterGateway":
        """Create a gateway from a cluster connection.

        Uses the in-cluster service account when ``in_cluster`` is set,
        otherwise the given kubeconfig file and context.
        """
        if connection.in_cluster:
            configuration = client.Configuration()
            config.load_incluster_config(client_configuration=configuration)
            api_client = client.ApiClient(configuration=configuration)
        else:
            api_client = await config.new_client_from_config(
                config_file=connection.kubeconfig_path,
                context=connection.context
            )

        logger.info(f"Connected gateway for cluster {connection.cluster_id}")
        return cls(connection.cluster_id, api_client, gateway_config)

    async def list_nodes(self) -> List[ClusterNode]:
        node_list = await self._call("list_nodes", self._core_v1_api.list_node)
        return [self._node_from_v1(node) for node in node_list.items or []]

    async def upsert_exposure(self, namespace: str, name: str,
                              desired: ExposureResource) -> ExposureResource:
        existing = await self._call(
            "read_service", self._core_v1_api.read_namespaced_service,
            name, namespace, not_found_ok=True
        )
        body = self._service_to_v1(desired, namespace, name, existing)

        if existing is None:
            service = await self._call(
                "create_service", self._core_v1_api.create_namespaced_service,
                namespace, body
            )
            logger.debug(f"Created service {namespace}/{name} in cluster {self.cluster_id}")
        else:
            service = await self._call(
                "replace_service", self._core_v1_api.replace_namespaced_service,
                name, namespace, body
            )
            logger.debug(f"Replaced service {namespace}/{name} in cluster {self.cluster_id}")

        return self._service_from_v1(service)

    async def get_exposure(self, namespace: str, name: str) -> Optional[ExposureResource]:
        service = await self._call(
            "read_service", self._core_v1_api.read_namespaced_service,
            name, namespace, not_found_ok=True
        )
        return self._service_from_v1(service) if service is not None else None

    async def delete_exposure(self, namespace: str, name: str) -> bool:
        result = await self._call(
            "delete_service", self._core_v1_api.delete_namespaced_service,
            name, namespace, not_found_ok=True
        )
        return result is not None

    async def close(self) -> None:
        await self._api_client.close()

    # Private helper methods

    async def _call(self, operation: str, func: Callable, *args, not_found_ok: bool = False) -> Any:
        """Call the API with a timeout, retrying transient failures.

        Returns None for a 404 when ``not_found_ok`` is set.
        """
        timeout = self.gateway_config.request_timeout

        async def attempt():
            try:
                return await asyncio.wait_for(func(*args), timeout=timeout)
            except asyncio.TimeoutError:
                raise OperationTimeoutError(operation, timeout, cluster_id=self.cluster_id)
            except ApiException as e:
                if e.status == 404 and not_found_ok:
                    return None
                raise GatewayError(
                    self.cluster_id, operation, e.reason or str(e),
                    status=e.status,
                    retryable=e.status in RETRYABLE_STATUSES,
                    cause=e
                )

        return await retry_async_operation(
            attempt, f"{self.cluster_id}:{operation}", self._retry_config
        )

    @staticmethod
    def _node_from_v1(node: Any) -> ClusterNode:
        addresses = []
        if node.status is not None and node.status.addresses:
            addresses = [NodeAddress(type=a.type, address=a.address)
                         for a in node.status.addresses if a.address]

        return ClusterNode(
            name=node.metadata.name,
            labels=dict(node.metadata.labels or {}),
            addresses=addresses
        )

    @staticmethod
    def _service_from_v1(service: Any) -> ExposureResource:
        ports = []
        for port in service.spec.ports or []:
            target_port = port.target_port
            if not isinstance(target_port, int):
                # Named target ports cannot be mapped back to a number
                target_port = port.port
            ports.append(ExposurePort(
                name=port.name,
                port=port.port,
                target_port=target_port,
                protocol=port.protocol or "TCP",
                node_port=port.node_port
            ))

        return ExposureResource(
            name=service.metadata.name,
            namespace=service.metadata.namespace,
            selector=dict(service.spec.selector or {}),
            ports=ports,
            labels=dict(service.metadata.labels or {}),
            annotations=dict(service.metadata.annotations or {}),
            service_type=service.spec.type or "NodePort",
            external_traffic_policy=service.spec.external_traffic_policy or "Local"
        )

    @staticmethod
    def _service_to_v1(desired: ExposureResource, namespace: str, name: str,
                       existing: Optional[Any] = None) -> client.V1Service:
        """Build the Service body, keeping server-assigned fields of ``existing``."""
        assigned: Dict[str, int] = {}
        resource_version = None
        cluster_ip = None

        if existing is not None:
            resource_version = existing.metadata.resource_version
            cluster_ip = existing.spec.cluster_ip
            for port in existing.spec.ports or []:
                if port.name and port.node_port:
                    assigned[port.name] = port.node_port

        ports = [
            client.V1ServicePort(
                name=port.name,
                port=port.port,
                target_port=port.target_port,
                protocol=port.protocol,
                node_port=assigned.get(port.name, port.node_port)
            )
            for port in desired.ports
        ]

        return client.V1Service(
            api_version="v1",
            kind="Service",
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels=dict(desired.labels),
                annotations=dict(desired.annotations),
                resource_version=resource_version
            ),
            spec=client.V1ServiceSpec(
                type=desired.service_type,
                ports=ports,
                selector=dict(desired.selector),
                external_traffic_policy=desired.external_traffic_policy,
                cluster_ip=cluster_ip
            )
        )


async def build_gateway_registry(connections: List[ClusterConnectionConfig],
                                 local_cluster_id: str,
                                 gateway_config: Optional[GatewayConfig] = None) -> GatewayRegistry:
    """Connect a gateway for every configured cluster.

    Args:
        connections: Cluster connections, one of which is the local cluster
        local_cluster_id: Reserved id of the local cluster
        gateway_config: Timeout and retry settings shared by all gateways

    Returns:
        Registry holding one Kubernetes gateway per cluster
    """
    gateways = {}
    for connection in connections:
        gateways[connection.cluster_id] = await KubernetesClusterGateway.connect(
            connection, gateway_config
        )

    return GatewayRegistry.from_mapping(gateways, local_cluster_id)
