"""
Per-pod exposure resource management.

Each pod of a stretch cluster gets its own NodePort Service selecting only
that pod. Names and labels are derived deterministically from the pod and
the reconciliation, so every reconciliation pass upserts the same object.
"""

import asyncio
import weakref
from typing import Mapping, Optional, Tuple

from ..config.settings import NetworkingConfig
from ..exceptions import ValidationError
from ..gateway.registry import GatewayRegistry
from ..models.base import Reconciliation
from ..models.exposure import ExposurePort, ExposureResource
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ExposureResourceManager:
    """Creates, reconciles and deletes per-pod exposure resources.

    Calls for the same resource are serialized; calls for different pods
    run concurrently.
    """

    def __init__(self, gateways: GatewayRegistry, config: Optional[NetworkingConfig] = None):
        """Initialize the manager.

        Args:
            gateways: Registry of cluster gateways
            config: Networking settings for names, selector and labels
        """
        self.gateways = gateways
        self.config = config or NetworkingConfig()
        # Locks live only while a call holds or waits on them
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str, str], asyncio.Lock]" = \
            weakref.WeakValueDictionary()

    def exposure_name(self, pod_name: str) -> str:
        """Derive the exposure name of a pod."""
        return f"{pod_name}{self.config.exposure_name_suffix}"

    def build_exposure(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                       pod_name: str, ports: Mapping[str, int]) -> ExposureResource:
        """Build the desired exposure of a pod.

        Args:
            reconciliation: Reconciliation the pod belongs to
            cluster_id: Cluster the pod runs in
            namespace: Namespace of the pod
            pod_name: Pod name
            ports: Port name to container port, in the order to expose them

        Returns:
            Desired exposure resource without node ports

        Raises:
            ValidationError: If the port spec is empty or invalid
        """
        self._validate_ports(pod_name, ports)
        prefix = self.config.label_prefix

        return ExposureResource(
            name=self.exposure_name(pod_name),
            namespace=namespace,
            selector={self.config.pod_selector_label: pod_name},
            ports=[
                ExposurePort(
                    name=port_name,
                    port=container_port,
                    target_port=container_port,
                    protocol=self.config.default_protocol
                )
                for port_name, container_port in ports.items()
            ],
            labels={
                "app": self.config.app_label_value,
                f"{prefix}/cluster": reconciliation.name,
                f"{prefix}/kind": reconciliation.kind,
                f"{prefix}/name": f"{reconciliation.name}-{reconciliation.kind.lower()}",
                f"{prefix}/stretch-cluster-id": cluster_id
            },
            annotations={f"{prefix}/stretch-cluster-id": cluster_id},
            external_traffic_policy=self.config.external_traffic_policy
        )

    async def ensure(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                     pod_name: str, ports: Mapping[str, int]) -> ExposureResource:
        """Create or update the exposure of a pod.

        Issues exactly one upsert to the pod's cluster.

        Returns:
            The exposure as stored by the cluster; node ports may still be unassigned

        Raises:
            GatewayUnavailableError: If no gateway is registered for the cluster
            ValidationError: If the port spec is empty or invalid
        """
        logger.debug(f"{reconciliation}: Creating NodePort resources for pod {pod_name} "
                     f"in cluster {cluster_id}")

        gateway = self.gateways.require(cluster_id)
        desired = self.build_exposure(reconciliation, cluster_id, namespace, pod_name, ports)

        async with self._lock_for(cluster_id, namespace, desired.name):
            exposure = await gateway.upsert_exposure(namespace, desired.name, desired)

        logger.info(f"{reconciliation}: Reconciled service {namespace}/{desired.name} "
                    f"in cluster {cluster_id} with node ports {exposure.assigned_ports()}")
        return exposure

    async def remove(self, reconciliation: Reconciliation, cluster_id: str, namespace: str,
                     pod_name: str) -> bool:
        """Delete the exposure of a pod.

        A cluster without a registered gateway has nothing to clean up and is
        treated as success.

        Returns:
            True if an exposure was deleted
        """
        name = self.exposure_name(pod_name)
        gateway = self.gateways.get(cluster_id)

        if gateway is None:
            logger.debug(f"{reconciliation}: No gateway for cluster {cluster_id}, "
                         f"nothing to delete for pod {pod_name}")
            return False

        async with self._lock_for(cluster_id, namespace, name):
            deleted = await gateway.delete_exposure(namespace, name)

        if deleted:
            logger.info(f"{reconciliation}: Deleted service {namespace}/{name} in cluster {cluster_id}")
        else:
            logger.debug(f"{reconciliation}: Service {namespace}/{name} already absent in cluster {cluster_id}")
        return deleted

    # Private helper methods

    def _lock_for(self, cluster_id: str, namespace: str, name: str) -> asyncio.Lock:
        return self._locks.setdefault((cluster_id, namespace, name), asyncio.Lock())

    @staticmethod
    def _validate_ports(pod_name: str, ports: Mapping[str, int]) -> None:
        if not pod_name:
            raise ValidationError("Pod name cannot be empty", field="pod_name")

        if not ports:
            raise ValidationError(f"No ports to expose for pod {pod_name}", field="ports")

        for port_name, container_port in ports.items():
            if not port_name:
                raise ValidationError(f"Empty port name for pod {pod_name}", field="ports")
            if not isinstance(container_port, int) or not (1 <= container_port <= 65535):
                raise ValidationError(
                    f"Invalid container port for {port_name}: {container_port}",
                    field="ports", value=container_port
                )
