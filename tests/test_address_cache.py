"""
Tests for stable node address selection and caching.
"""

import asyncio
import pytest

from stretch_networking.exceptions import GatewayError, NoEligibleNodeError
from stretch_networking.gateway.memory import InMemoryClusterGateway
from stretch_networking.gateway.registry import GatewayRegistry
from stretch_networking.models.cluster import ClusterNode, NodeAddress
from stretch_networking.networking.address_cache import (
    AddressSelectionStrategy,
    FirstWorkerNodeStrategy,
    SelectedAddress,
    StableAddressCache
)

from conftest import make_control_plane_node, make_gateway, make_node, MASTER_LABEL


@pytest.mark.unit
class TestFirstWorkerNodeStrategy:
    """Test FirstWorkerNodeStrategy selection rules."""

    @pytest.fixture
    def strategy(self):
        return FirstWorkerNodeStrategy()

    def test_prefers_external_address(self, strategy):
        """External IP wins even when listed after the internal IP."""
        nodes = [make_node("worker-0", external="203.0.113.4", internal="10.1.0.4")]

        selected = strategy.select("c1", nodes)

        assert selected == SelectedAddress("203.0.113.4", "worker-0", "ExternalIP")

    def test_falls_back_to_internal_address(self, strategy):
        """Internal IP is used when the node has no external IP."""
        nodes = [make_node("worker-0", internal="10.1.0.4")]

        selected = strategy.select("c1", nodes)

        assert selected.address == "10.1.0.4"
        assert selected.address_type == "InternalIP"

    def test_skips_control_plane_and_master_nodes(self, strategy):
        """Nodes with a master or control-plane role are never selected."""
        nodes = [
            make_control_plane_node("cp-0", internal="10.1.0.1"),
            make_control_plane_node("master-0", internal="10.1.0.2", label=MASTER_LABEL),
            make_node("worker-0", internal="10.1.0.3"),
        ]

        assert strategy.select("c1", nodes).node_name == "worker-0"

    def test_first_worker_in_list_order_wins(self, strategy):
        """The first eligible worker wins even if a later one has an external IP."""
        nodes = [
            make_node("worker-0", internal="10.1.0.3"),
            make_node("worker-1", external="203.0.113.9"),
        ]

        assert strategy.select("c1", nodes).address == "10.1.0.3"

    def test_skips_worker_without_usable_address(self, strategy):
        """A worker with only a hostname is skipped."""
        nodes = [
            ClusterNode(name="worker-0", addresses=[NodeAddress(type="Hostname", address="worker-0")]),
            make_node("worker-1", internal="10.1.0.4"),
        ]

        assert strategy.select("c1", nodes).node_name == "worker-1"

    def test_empty_node_list(self, strategy):
        """An empty node list has no eligible node."""
        with pytest.raises(NoEligibleNodeError) as exc_info:
            strategy.select("c1", [])

        assert exc_info.value.cluster_id == "c1"
        assert exc_info.value.details["reason"] == "no nodes found"

    def test_only_control_plane_nodes(self, strategy):
        """A cluster of control-plane nodes has no eligible node."""
        nodes = [make_control_plane_node("cp-0", internal="10.1.0.1")]

        with pytest.raises(NoEligibleNodeError, match="control-plane"):
            strategy.select("c1", nodes)

    def test_no_worker_with_address(self, strategy):
        """Workers without any preferred address type are not eligible."""
        nodes = [ClusterNode(name="worker-0", addresses=[])]

        with pytest.raises(NoEligibleNodeError) as exc_info:
            strategy.select("c1", nodes)

        assert exc_info.value.details["node_count"] == 1

    def test_custom_preference_order(self):
        """Address type preference is configurable."""
        strategy = FirstWorkerNodeStrategy(preferred_address_types=["InternalIP", "ExternalIP"])
        nodes = [make_node("worker-0", external="203.0.113.4", internal="10.1.0.4")]

        assert strategy.select("c1", nodes).address == "10.1.0.4"

    def test_custom_control_plane_labels(self):
        """Control-plane label keys are configurable."""
        strategy = FirstWorkerNodeStrategy(control_plane_labels=["example.com/infra"])
        nodes = [
            make_node("infra-0", internal="10.1.0.1", labels={"example.com/infra": "true"}),
            make_control_plane_node("cp-0", internal="10.1.0.2"),
        ]

        assert strategy.select("c1", nodes).node_name == "cp-0"


@pytest.mark.unit
class TestStableAddressCache:
    """Test StableAddressCache initialization and lookup."""

    @pytest.mark.asyncio
    async def test_initialize_caches_one_address_per_cluster(self, gateways):
        """Every cluster gets exactly one address."""
        cache = StableAddressCache()

        await cache.initialize(gateways)

        assert cache.initialized
        assert cache.snapshot() == {
            "central": "10.0.0.1",
            "cluster-a": "10.0.0.5",
            "cluster-b": "10.0.1.7",
        }
        assert cache.lookup("cluster-a") == "10.0.0.5"
        assert cache.details("cluster-b").node_name == "b-worker-0"
        assert len(cache) == 3

    @pytest.mark.asyncio
    async def test_initialize_accepts_registry(self, registry):
        """A gateway registry works as well as a mapping."""
        cache = StableAddressCache()

        await cache.initialize(registry)

        assert "central" in cache
        assert "cluster-b" in cache

    @pytest.mark.asyncio
    async def test_lookup_unknown_cluster(self):
        """Lookup of an unknown cluster returns None."""
        cache = StableAddressCache()

        assert cache.lookup("nowhere") is None
        assert "nowhere" not in cache

    @pytest.mark.asyncio
    async def test_failed_cluster_does_not_poison_others(self, central_gateway, cluster_a_gateway):
        """A control-plane only cluster fails alone; the others are cached."""
        bad = make_gateway("cluster-x", [make_control_plane_node("x-cp-0", internal="10.9.0.1")])
        cache = StableAddressCache()

        with pytest.raises(NoEligibleNodeError) as exc_info:
            await cache.initialize({"central": central_gateway, "cluster-x": bad, "cluster-a": cluster_a_gateway})

        assert exc_info.value.cluster_id == "cluster-x"
        assert cache.lookup("central") == "10.0.0.1"
        assert cache.lookup("cluster-a") == "10.0.0.5"
        assert cache.lookup("cluster-x") is None
        assert cache.failed_clusters() == ["cluster-x"]

    @pytest.mark.asyncio
    async def test_first_failure_in_gateway_order_is_raised(self, central_gateway):
        """With several failures, the first cluster in gateway order is reported."""
        empty = make_gateway("empty", [])
        broken = make_gateway("broken", [])
        broken.fail_on("list_nodes", GatewayError("broken", "list_nodes", "connection refused"))
        cache = StableAddressCache()

        with pytest.raises(GatewayError):
            await cache.initialize({"central": central_gateway, "broken": broken, "empty": empty})

        assert set(cache.failures) == {"broken", "empty"}
        assert isinstance(cache.failures["empty"], NoEligibleNodeError)
        assert cache.lookup("central") == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_address_never_changes_after_initialization(self, gateways, cluster_a_gateway):
        """A second initialize keeps the first address even if nodes changed."""
        cache = StableAddressCache()
        await cache.initialize(gateways)

        cluster_a_gateway.nodes = [make_node("a-worker-9", external="10.0.0.99")]
        await cache.initialize(gateways)

        assert cache.lookup("cluster-a") == "10.0.0.5"
        assert cluster_a_gateway.calls["list_nodes"] == 1

    @pytest.mark.asyncio
    async def test_reinitialize_discovers_previously_failed_cluster(self, central_gateway):
        """Clusters that failed are discovered again on the next initialize."""
        late = make_gateway("late", [])
        cache = StableAddressCache()

        with pytest.raises(NoEligibleNodeError):
            await cache.initialize({"central": central_gateway, "late": late})

        late.nodes = [make_node("late-worker-0", internal="10.3.0.4")]
        await cache.initialize({"central": central_gateway, "late": late})

        assert cache.lookup("late") == "10.3.0.4"
        assert cache.failures == {}
        assert central_gateway.calls["list_nodes"] == 1

    @pytest.mark.asyncio
    async def test_discoveries_run_concurrently(self):
        """Slow clusters are listed in parallel, not one after the other."""
        started = []
        release = asyncio.Event()

        class SlowGateway(InMemoryClusterGateway):
            async def list_nodes(self):
                started.append(self.cluster_id)
                if len(started) == 2:
                    release.set()
                await asyncio.wait_for(release.wait(), timeout=1)
                return await super().list_nodes()

        cache = StableAddressCache()
        await cache.initialize({
            "c1": SlowGateway("c1", nodes=[make_node("w1", internal="10.0.0.1")]),
            "c2": SlowGateway("c2", nodes=[make_node("w2", internal="10.0.0.2")]),
        })

        assert sorted(started) == ["c1", "c2"]
        assert cache.snapshot() == {"c1": "10.0.0.1", "c2": "10.0.0.2"}

    @pytest.mark.asyncio
    async def test_custom_strategy(self, gateways):
        """The selection strategy can be replaced without changing callers."""

        class LastNodeStrategy(AddressSelectionStrategy):
            def select(self, cluster_id, nodes):
                node = nodes[-1]
                return SelectedAddress(node.addresses[0].address, node.name, node.addresses[0].type)

        cache = StableAddressCache(LastNodeStrategy())
        await cache.initialize(gateways)

        assert cache.lookup("cluster-a") == "192.168.1.21"

    @pytest.mark.asyncio
    async def test_initialize_without_gateways(self):
        """Initializing with nothing to discover still marks the cache initialized."""
        cache = StableAddressCache()

        await cache.initialize(GatewayRegistry("central"))

        assert cache.initialized
        assert cache.snapshot() == {}
