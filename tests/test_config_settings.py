"""
Tests for configuration settings and management.
"""

import json
import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from stretch_networking.config.settings import (
    Settings,
    NetworkingConfig,
    GatewayConfig,
    ClusterConnectionConfig,
    MonitoringConfig,
    Environment,
    LogLevel,
    reload_settings
)
from stretch_networking.config.utils import (
    load_config_from_file,
    create_settings_from_dict,
    load_cluster_connections,
    validate_configuration
)


class TestNetworkingConfig:
    """Test networking configuration settings."""

    def test_default_values(self):
        """Test default networking configuration values."""
        config = NetworkingConfig()

        assert config.provider == "nodeport"
        assert config.local_cluster_id == "central"
        assert config.exposure_name_suffix == "-nodeport"
        assert config.pod_selector_label == "statefulset.kubernetes.io/pod-name"
        assert config.external_traffic_policy == "Local"
        assert config.default_protocol == "TCP"
        assert config.preferred_address_types == ["ExternalIP", "InternalIP"]
        assert "node-role.kubernetes.io/control-plane" in config.control_plane_role_labels

    def test_traffic_policy_validation(self):
        assert NetworkingConfig(external_traffic_policy="Cluster").external_traffic_policy == "Cluster"

        with pytest.raises(PydanticValidationError):
            NetworkingConfig(external_traffic_policy="Global")

    def test_protocol_is_uppercased(self):
        assert NetworkingConfig(default_protocol="udp").default_protocol == "UDP"

        with pytest.raises(PydanticValidationError):
            NetworkingConfig(default_protocol="HTTP")

    def test_address_type_validation(self):
        """Test preferred address type validation."""
        with pytest.raises(PydanticValidationError):
            NetworkingConfig(preferred_address_types=[])

        with pytest.raises(PydanticValidationError):
            NetworkingConfig(preferred_address_types=["PublicIP"])

        with pytest.raises(PydanticValidationError):
            NetworkingConfig(preferred_address_types=["InternalIP", "InternalIP"])

    def test_empty_suffix_rejected(self):
        with pytest.raises(PydanticValidationError):
            NetworkingConfig(exposure_name_suffix="")


class TestGatewayConfig:
    """Test gateway configuration settings."""

    def test_default_values(self):
        config = GatewayConfig()

        assert config.request_timeout == 30
        assert config.max_retries == 3
        assert config.retry_delay == 1.0
        assert config.node_port_range_start == 30000
        assert config.node_port_range_end == 32767

    def test_port_range_order(self):
        with pytest.raises(PydanticValidationError, match="Invalid NodePort range"):
            GatewayConfig(node_port_range_start=32000, node_port_range_end=31000)

    def test_negative_retries_rejected(self):
        with pytest.raises(PydanticValidationError):
            GatewayConfig(max_retries=-1)


class TestSettings:
    """Test main settings class."""

    def test_development_overrides(self):
        """Development enables debug and plain text logs."""
        settings = Settings(environment=Environment.DEVELOPMENT)

        assert settings.debug is True
        assert settings.monitoring.log_level == LogLevel.DEBUG
        assert settings.monitoring.structured_logging is False
        assert settings.is_development()

    def test_production_overrides(self):
        settings = Settings(environment=Environment.PRODUCTION, debug=True)

        assert settings.debug is False
        assert settings.monitoring.log_level == LogLevel.INFO
        assert settings.monitoring.structured_logging is True
        assert settings.is_production()

    def test_testing_overrides(self):
        settings = Settings(environment=Environment.TESTING)

        assert settings.monitoring.log_level == LogLevel.WARNING
        assert settings.is_testing()

    def test_environment_variables(self, monkeypatch):
        """Nested settings are read from STRETCH_ prefixed variables."""
        monkeypatch.setenv("STRETCH_ENVIRONMENT", "production")
        monkeypatch.setenv("STRETCH_NETWORKING__LOCAL_CLUSTER_ID", "hub")
        monkeypatch.setenv("STRETCH_GATEWAY__MAX_RETRIES", "5")

        settings = Settings()

        assert settings.environment == Environment.PRODUCTION
        assert settings.networking.local_cluster_id == "hub"
        assert settings.gateway.max_retries == 5

    def test_reload_settings(self, monkeypatch):
        monkeypatch.setenv("STRETCH_NETWORKING__EXPOSURE_NAME_SUFFIX", "-np")

        settings = reload_settings()

        assert settings.networking.exposure_name_suffix == "-np"

        monkeypatch.delenv("STRETCH_NETWORKING__EXPOSURE_NAME_SUFFIX")
        reload_settings()

    def test_get_cluster(self):
        settings = Settings(clusters=[
            ClusterConnectionConfig(cluster_id="central", in_cluster=True),
            ClusterConnectionConfig(cluster_id="cluster-a", kubeconfig_path="/etc/a.yaml"),
        ])

        assert settings.get_cluster("cluster-a").kubeconfig_path == "/etc/a.yaml"
        assert settings.get_cluster("cluster-z") is None

    def test_to_dict(self):
        data = Settings(environment=Environment.TESTING).to_dict()

        assert data["environment"] == "testing"
        assert data["networking"]["provider"] == "nodeport"
        assert data["monitoring"]["log_level"] == "WARNING"


class TestMonitoringConfig:
    def test_default_values(self):
        config = MonitoringConfig()

        assert config.log_level == LogLevel.INFO
        assert config.structured_logging is True


class TestConfigUtils:
    """Test configuration utility functions."""

    def test_load_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"networking": {"local_cluster_id": "hub"}}))

        assert load_config_from_file(path) == {"networking": {"local_cluster_id": "hub"}}

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"environment": "testing"}))

        assert load_config_from_file(path) == {"environment": "testing"}

    def test_load_empty_yaml_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")

        assert load_config_from_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_from_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("x = 1")

        with pytest.raises(ValueError, match="Unsupported file format"):
            load_config_from_file(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Invalid configuration file format"):
            load_config_from_file(path)

    def test_create_settings_from_dict_ignores_unknown_keys(self):
        settings = create_settings_from_dict({
            "environment": "production",
            "networking": {"exposure_name_suffix": "-ext"},
            "unknown": {"x": 1}
        })

        assert settings.environment == Environment.PRODUCTION
        assert settings.networking.exposure_name_suffix == "-ext"

    def test_load_cluster_connections_from_list(self, tmp_path):
        path = tmp_path / "clusters.yaml"
        path.write_text(yaml.safe_dump([
            {"cluster_id": "central", "in_cluster": True},
            {"cluster_id": "cluster-a", "kubeconfig_path": "/etc/a.yaml", "context": "a"},
        ]))

        connections = load_cluster_connections(path)

        assert [c.cluster_id for c in connections] == ["central", "cluster-a"]
        assert connections[1].context == "a"

    def test_load_cluster_connections_from_mapping(self, tmp_path):
        path = tmp_path / "clusters.json"
        path.write_text(json.dumps({"clusters": [{"cluster_id": "central", "in_cluster": True}]}))

        assert load_cluster_connections(path)[0].in_cluster is True

    def test_load_cluster_connections_rejects_scalar(self, tmp_path):
        path = tmp_path / "clusters.yaml"
        path.write_text(yaml.safe_dump({"clusters": "central"}))

        with pytest.raises(ValueError, match="Expected a list"):
            load_cluster_connections(path)

    def test_validate_valid_configuration(self):
        settings = Settings(clusters=[
            ClusterConnectionConfig(cluster_id="central", in_cluster=True),
            ClusterConnectionConfig(cluster_id="cluster-a", kubeconfig_path="/etc/a.yaml"),
        ])

        assert validate_configuration(settings) == []

    def test_validate_reports_problems(self):
        settings = Settings(
            networking=NetworkingConfig(provider="loadbalancer"),
            clusters=[
                ClusterConnectionConfig(cluster_id="cluster-a", kubeconfig_path="/etc/a.yaml"),
                ClusterConnectionConfig(cluster_id="cluster-a", context="a"),
                ClusterConnectionConfig(cluster_id="cluster-b"),
            ]
        )

        problems = validate_configuration(settings)

        assert "Duplicate cluster id: cluster-a" in problems
        assert any("cluster-b needs a kubeconfig" in problem for problem in problems)
        assert "No connection configured for the local cluster 'central'" in problems
        assert "Unsupported networking provider: loadbalancer" in problems
