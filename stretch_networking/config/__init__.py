"""
Configuration package for the stretch cluster networking engine.

This package provides configuration management with environment variable support,
validation, and deployment environment handling.
"""

from .settings import (
    Settings,
    NetworkingConfig,
    GatewayConfig,
    ClusterConnectionConfig,
    MonitoringConfig,
    Environment,
    LogLevel,
    settings,
    get_settings,
    reload_settings
)

from .utils import (
    load_config_from_file,
    create_settings_from_dict,
    load_cluster_connections,
    validate_configuration
)

__all__ = [
    # Settings classes
    "Settings",
    "NetworkingConfig",
    "GatewayConfig",
    "ClusterConnectionConfig",
    "MonitoringConfig",

    # Enums
    "Environment",
    "LogLevel",

    # Settings instances and functions
    "settings",
    "get_settings",
    "reload_settings",

    # Utility functions
    "load_config_from_file",
    "create_settings_from_dict",
    "load_cluster_connections",
    "validate_configuration"
]
