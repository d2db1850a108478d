"""
Configuration management for the stretch cluster networking engine.

This module provides configuration classes for the networking provider, the
cluster gateways and logging, with environment variable support, validation
and deployment environment handling.
"""

from typing import Dict, Any, Optional, List
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


KNOWN_ADDRESS_TYPES = {"ExternalIP", "InternalIP", "Hostname", "ExternalDNS", "InternalDNS"}


class NetworkingConfig(BaseModel):
    """Networking provider configuration settings."""

    provider: str = Field(
        default="nodeport",
        description="Name of the networking provider"
    )
    local_cluster_id: str = Field(
        default="central",
        min_length=1,
        description="Reserved cluster id of the local (central) cluster"
    )

    # Exposure resources
    exposure_name_suffix: str = Field(
        default="-nodeport",
        min_length=1,
        description="Suffix appended to the pod name to derive the exposure name"
    )
    pod_selector_label: str = Field(
        default="statefulset.kubernetes.io/pod-name",
        description="Pod label used to select exactly one pod"
    )
    external_traffic_policy: str = Field(
        default="Local",
        description="External traffic policy of the exposure Service"
    )
    default_protocol: str = Field(
        default="TCP",
        description="Protocol of exposure ports"
    )

    # Ownership labels
    label_prefix: str = Field(
        default="strimzi.io",
        description="Prefix of ownership label keys"
    )
    app_label_value: str = Field(
        default="strimzi",
        description="Value of the 'app' label"
    )

    # Stable address selection
    control_plane_role_labels: List[str] = Field(
        default_factory=lambda: [
            "node-role.kubernetes.io/master",
            "node-role.kubernetes.io/control-plane"
        ],
        description="Node labels marking control-plane nodes to skip"
    )
    preferred_address_types: List[str] = Field(
        default_factory=lambda: ["ExternalIP", "InternalIP"],
        description="Node address types in order of preference"
    )

    @field_validator('external_traffic_policy')
    @classmethod
    def validate_traffic_policy(cls, v):
        """Validate the external traffic policy."""
        if v not in ("Local", "Cluster"):
            raise ValueError(f"Invalid external traffic policy: {v}. Expected Local or Cluster")
        return v

    @field_validator('default_protocol')
    @classmethod
    def validate_protocol(cls, v):
        """Validate the port protocol."""
        v = v.upper()
        if v not in ("TCP", "UDP", "SCTP"):
            raise ValueError(f"Invalid protocol: {v}")
        return v

    @field_validator('preferred_address_types')
    @classmethod
    def validate_address_types(cls, v):
        """Validate preferred node address types."""
        if not v:
            raise ValueError("At least one preferred address type is required")

        unknown = [t for t in v if t not in KNOWN_ADDRESS_TYPES]
        if unknown:
            raise ValueError(f"Unknown node address types: {', '.join(unknown)}")

        if len(v) != len(set(v)):
            raise ValueError("Preferred address types must be unique")

        return v


class GatewayConfig(BaseModel):
    """Cluster gateway configuration settings."""

    # Request settings
    request_timeout: int = Field(
        default=30,
        ge=1,
        description="Request timeout in seconds"
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum number of retries for failed requests"
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.1,
        description="Base delay between retries in seconds"
    )
    max_retry_delay: float = Field(
        default=10.0,
        ge=0.1,
        description="Maximum delay between retries in seconds"
    )

    # NodePort range used by in-memory gateways
    node_port_range_start: int = Field(
        default=30000,
        ge=1,
        le=65535,
        description="First port of the NodePort range"
    )
    node_port_range_end: int = Field(
        default=32767,
        ge=1,
        le=65535,
        description="Last port of the NodePort range"
    )

    @model_validator(mode='after')
    def validate_port_range(self):
        """Ensure the NodePort range is ordered."""
        if self.node_port_range_start > self.node_port_range_end:
            raise ValueError(
                f"Invalid NodePort range: {self.node_port_range_start} > {self.node_port_range_end}"
            )
        return self


class ClusterConnectionConfig(BaseModel):
    """Connection settings for one member cluster."""

    cluster_id: str = Field(
        ...,
        min_length=1,
        description="Cluster identifier"
    )
    kubeconfig_path: Optional[str] = Field(
        default=None,
        description="Path to the kubeconfig file"
    )
    context: Optional[str] = Field(
        default=None,
        description="Kubeconfig context to use"
    )
    in_cluster: bool = Field(
        default=False,
        description="Use the in-cluster service account configuration"
    )


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    structured_logging: bool = Field(
        default=True,
        description="Emit JSON structured log lines"
    )


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Environment settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Component configurations
    networking: NetworkingConfig = Field(
        default_factory=NetworkingConfig,
        description="Networking provider configuration"
    )
    gateway: GatewayConfig = Field(
        default_factory=GatewayConfig,
        description="Cluster gateway configuration"
    )
    monitoring: MonitoringConfig = Field(
        default_factory=MonitoringConfig,
        description="Logging configuration"
    )
    clusters: List[ClusterConnectionConfig] = Field(
        default_factory=list,
        description="Member cluster connections"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_prefix": "STRETCH_",
        "extra": "ignore"
    }

    @model_validator(mode='after')
    def validate_environment_specific_settings(self):
        """Apply environment-specific configuration overrides."""
        if self.environment == Environment.DEVELOPMENT:
            self.monitoring.log_level = LogLevel.DEBUG
            self.monitoring.structured_logging = False
            self.debug = True

        elif self.environment == Environment.TESTING:
            self.monitoring.log_level = LogLevel.WARNING
            self.debug = False

        elif self.environment == Environment.PRODUCTION:
            self.monitoring.log_level = LogLevel.INFO
            self.debug = False

        return self

    def get_cluster(self, cluster_id: str) -> Optional[ClusterConnectionConfig]:
        """Get the connection settings of a cluster."""
        for cluster in self.clusters:
            if cluster.cluster_id == cluster_id:
                return cluster
        return None

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return self.model_dump(mode="json")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment variables and files."""
    global settings
    settings = Settings()
    return settings
