"""
Pytest configuration and shared fixtures
"""

import pytest
from typing import Dict, List, Optional

from stretch_networking.config.settings import NetworkingConfig
from stretch_networking.gateway.memory import InMemoryClusterGateway
from stretch_networking.gateway.port_allocator import PortRange
from stretch_networking.gateway.registry import GatewayRegistry
from stretch_networking.models.base import Reconciliation
from stretch_networking.models.cluster import ClusterNode, NodeAddress
from stretch_networking.networking.provider import NodePortNetworkingProvider


CONTROL_PLANE_LABEL = "node-role.kubernetes.io/control-plane"
MASTER_LABEL = "node-role.kubernetes.io/master"
NAMESPACE = "kafka"


def make_node(name: str,
              external: Optional[str] = None,
              internal: Optional[str] = None,
              labels: Optional[Dict[str, str]] = None) -> ClusterNode:
    """Build a node with the given addresses, internal listed first."""
    addresses = []
    if internal:
        addresses.append(NodeAddress.internal(internal))
    if external:
        addresses.append(NodeAddress.external(external))
    addresses.append(NodeAddress(type="Hostname", address=name))
    return ClusterNode(name=name, labels=labels or {}, addresses=addresses)


def make_control_plane_node(name: str, internal: str, label: str = CONTROL_PLANE_LABEL) -> ClusterNode:
    return make_node(name, internal=internal, labels={label: ""})


def make_gateway(cluster_id: str, nodes: List[ClusterNode],
                 start_port: int = 31000, assign_node_ports: bool = True) -> InMemoryClusterGateway:
    return InMemoryClusterGateway(
        cluster_id,
        nodes=nodes,
        port_range=PortRange(start_port, start_port + 99),
        assign_node_ports=assign_node_ports
    )


@pytest.fixture
def reconciliation():
    """Reconciliation of the stretch Kafka cluster 'my-cluster'"""
    return Reconciliation(namespace=NAMESPACE, name="my-cluster")


@pytest.fixture
def networking_config():
    """Default networking settings"""
    return NetworkingConfig()


@pytest.fixture
def central_gateway():
    """Local cluster: a control-plane node followed by a worker with an external IP"""
    return make_gateway("central", [
        make_control_plane_node("central-cp-0", internal="192.168.0.10"),
        make_node("central-worker-0", external="10.0.0.1", internal="192.168.0.11"),
    ], start_port=30000)


@pytest.fixture
def cluster_a_gateway():
    """Remote cluster with a worker exposing an external IP"""
    return make_gateway("cluster-a", [
        make_node("a-worker-0", external="10.0.0.5", internal="192.168.1.20"),
        make_node("a-worker-1", external="10.0.0.6", internal="192.168.1.21"),
    ], start_port=31000)


@pytest.fixture
def cluster_b_gateway():
    """Remote cluster whose workers only have internal IPs"""
    return make_gateway("cluster-b", [
        make_control_plane_node("b-master-0", internal="10.0.1.2", label=MASTER_LABEL),
        make_node("b-worker-0", internal="10.0.1.7"),
    ], start_port=32000)


@pytest.fixture
def gateways(central_gateway, cluster_a_gateway, cluster_b_gateway):
    """Mapping of every cluster id to its gateway"""
    return {
        "central": central_gateway,
        "cluster-a": cluster_a_gateway,
        "cluster-b": cluster_b_gateway,
    }


@pytest.fixture
def registry(gateways):
    """Gateway registry with the local cluster registered first"""
    return GatewayRegistry.from_mapping(gateways, "central")


@pytest.fixture
def provider(networking_config):
    """Uninitialized NodePort provider"""
    return NodePortNetworkingProvider(networking_config)


@pytest.fixture
def kafka_ports():
    """Container ports exposed for every Kafka pod"""
    return {"tcp-replication": 9091, "tcp-ctrlplane": 9090, "tcp-clients": 9092}
