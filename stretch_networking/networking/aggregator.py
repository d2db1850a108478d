"""
Listener and quorum voter aggregation.

Renders the two configuration strings a Kafka node needs at boot from
concurrently resolved endpoints. Either every entry resolves and the full
string is returned, or ``AggregateError`` is raised and nothing is returned.
"""

import asyncio
from typing import List, Mapping, Sequence, Tuple, Union

from ..exceptions import AggregateError, ValidationError
from ..models.base import Reconciliation
from ..models.endpoint import ControllerPodInfo, Endpoint, ListenerEntry, VoterEntry
from ..utils.logging import get_logger
from .endpoint_resolver import EndpointResolver

logger = get_logger(__name__)


class ListenerVoterAggregator:
    """Builds ``advertised.listeners`` and ``controller.quorum.voters`` values."""

    def __init__(self, resolver: EndpointResolver):
        self.resolver = resolver

    async def resolve_listeners(self, reconciliation: Reconciliation, cluster_id: str,
                                namespace: str, pod_name: str,
                                listeners: Mapping[str, str]) -> List[ListenerEntry]:
        """Resolve every listener of a pod, keeping the input order.

        Args:
            listeners: Listener name to port name, in the order to advertise

        Raises:
            AggregateError: If any listener cannot be resolved
        """
        names = list(listeners)
        endpoints = await self._gather(
            "advertised listeners",
            names,
            [self.resolver.resolve(reconciliation, cluster_id, namespace, pod_name, listeners[name])
             for name in names]
        )
        return [ListenerEntry(listener_name=name, endpoint=endpoint)
                for name, endpoint in zip(names, endpoints)]

    async def resolve_voters(self, reconciliation: Reconciliation, namespace: str,
                             controller_pods: Sequence[Union[ControllerPodInfo, Tuple[int, str, str]]],
                             replication_port_name: str) -> List[VoterEntry]:
        """Resolve every controller of the quorum, keeping the input order.

        Raises:
            ValidationError: If two controllers share a node id
            AggregateError: If any controller cannot be resolved
        """
        pods = [ControllerPodInfo.coerce(pod) for pod in controller_pods]

        node_ids = [pod.node_id for pod in pods]
        if len(node_ids) != len(set(node_ids)):
            raise ValidationError("Controller node ids must be unique", field="controller_pods",
                                  value=node_ids)

        endpoints = await self._gather(
            "quorum voters",
            [pod.node_id for pod in pods],
            [self.resolver.resolve(reconciliation, pod.cluster_id, namespace, pod.pod_name,
                                   replication_port_name)
             for pod in pods]
        )
        return [VoterEntry(node_id=pod.node_id, endpoint=endpoint)
                for pod, endpoint in zip(pods, endpoints)]

    async def build_advertised_listeners(self, reconciliation: Reconciliation, cluster_id: str,
                                         namespace: str, pod_name: str,
                                         listeners: Mapping[str, str]) -> str:
        """Render ``name://address:port`` entries joined by commas, in input order."""
        entries = await self.resolve_listeners(reconciliation, cluster_id, namespace, pod_name, listeners)
        return ",".join(entry.render() for entry in entries)

    async def build_quorum_voters(self, reconciliation: Reconciliation, namespace: str,
                                  controller_pods: Sequence[Union[ControllerPodInfo, Tuple[int, str, str]]],
                                  replication_port_name: str) -> str:
        """Render ``nodeId@address:port`` entries joined by commas, in input order."""
        entries = await self.resolve_voters(reconciliation, namespace, controller_pods, replication_port_name)
        return ",".join(entry.render() for entry in entries)

    # Private helper methods

    @staticmethod
    async def _gather(operation: str, keys: List, resolutions: List) -> List[Endpoint]:
        """Run resolutions concurrently; raise on the first failure in input order."""
        results = await asyncio.gather(*resolutions, return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        failures = [(key, result) for key, result in zip(keys, results)
                    if isinstance(result, Exception)]
        if failures:
            error = AggregateError(operation, failures)
            logger.warning(f"{error.message} ({len(failures)} of {len(keys)} entries failed)")
            raise error

        fallbacks = [str(key) for key, endpoint in zip(keys, results) if endpoint.used_fallback]
        if fallbacks:
            logger.warning(f"Built {operation} using the local cluster address for: {', '.join(fallbacks)}")

        return list(results)
