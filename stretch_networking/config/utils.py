"""
Configuration utilities for the stretch cluster networking engine.

This module provides utility functions for loading settings and cluster
connection lists from files, and for validating a configuration before the
engine is started.
"""

import json
import yaml
from typing import Dict, Any, List, Union
from pathlib import Path

from .settings import Settings, ClusterConnectionConfig


def load_config_from_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a file (JSON or YAML).

    Args:
        file_path: Path to the configuration file

    Returns:
        Dictionary containing configuration data

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file format is not supported or invalid
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() in ['.json']:
                return json.load(f)
            elif file_path.suffix.lower() in ['.yml', '.yaml']:
                return yaml.safe_load(f) or {}
            else:
                raise ValueError(f"Unsupported file format: {file_path.suffix}")
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid configuration file format: {e}")


def create_settings_from_dict(config_dict: Dict[str, Any]) -> Settings:
    """
    Create Settings instance from configuration dictionary.

    Unknown top-level keys are ignored.

    Args:
        config_dict: Configuration dictionary

    Returns:
        Settings instance
    """
    known_fields = {'environment', 'debug', 'networking', 'gateway', 'monitoring', 'clusters'}
    settings_dict = {key: value for key, value in config_dict.items() if key in known_fields}
    return Settings(**settings_dict)


def load_cluster_connections(file_path: Union[str, Path]) -> List[ClusterConnectionConfig]:
    """
    Load member cluster connections from a file.

    The file holds either a list of connections or a mapping with a
    ``clusters`` key holding that list.

    Args:
        file_path: Path to the JSON or YAML file

    Returns:
        List of cluster connection settings
    """
    data = load_config_from_file(file_path)

    if isinstance(data, dict):
        data = data.get("clusters", [])

    if not isinstance(data, list):
        raise ValueError(f"Expected a list of cluster connections in {file_path}")

    return [ClusterConnectionConfig(**entry) for entry in data]


def validate_configuration(settings: Settings) -> List[str]:
    """
    Validate a configuration for problems pydantic cannot see on its own.

    Args:
        settings: Settings to validate

    Returns:
        List of problems (empty if the configuration is valid)
    """
    problems = []
    local_id = settings.networking.local_cluster_id

    seen = set()
    for cluster in settings.clusters:
        if cluster.cluster_id in seen:
            problems.append(f"Duplicate cluster id: {cluster.cluster_id}")
        seen.add(cluster.cluster_id)

        if not cluster.in_cluster and not cluster.kubeconfig_path and not cluster.context:
            problems.append(
                f"Cluster {cluster.cluster_id} needs a kubeconfig path, a context or in_cluster"
            )

    if settings.clusters and local_id not in seen:
        problems.append(f"No connection configured for the local cluster '{local_id}'")

    if settings.networking.provider != "nodeport":
        problems.append(f"Unsupported networking provider: {settings.networking.provider}")

    return problems
