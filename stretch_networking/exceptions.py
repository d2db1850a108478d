"""
Custom exception classes for the stretch cluster networking engine.

This module defines a hierarchy of custom exceptions that provide structured
error handling for address discovery, exposure management and endpoint
resolution. Every operation of the engine either returns its value or raises
one of these exceptions; nothing is retried internally.
"""

import logging
from typing import Optional, Dict, Any, List
from enum import Enum


logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for the networking engine."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT = "TIMEOUT"

    # Discovery errors
    DISCOVERY_FAILED = "DISCOVERY_FAILED"
    NO_ELIGIBLE_NODE = "NO_ELIGIBLE_NODE"
    NO_STABLE_ADDRESS = "NO_STABLE_ADDRESS"

    # Gateway errors
    GATEWAY_UNAVAILABLE = "GATEWAY_UNAVAILABLE"
    GATEWAY_ERROR = "GATEWAY_ERROR"

    # Exposure errors
    EXPOSURE_NOT_FOUND = "EXPOSURE_NOT_FOUND"
    PORT_NOT_ASSIGNED = "PORT_NOT_ASSIGNED"

    # Aggregation errors
    AGGREGATE_FAILED = "AGGREGATE_FAILED"


class StretchNetworkingError(Exception):
    """Base exception class for all networking engine errors.

    It carries a standardized error code, the cluster the error relates to
    (when there is one) and additional context details. ``transient`` tells
    the caller whether the condition is expected to clear on a later
    reconciliation pass.
    """

    transient = False

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        cluster_id: Optional[str] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Standardized error code
            details: Additional error context and details
            cause: The underlying exception that caused this error
            cluster_id: Cluster the error relates to
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.cluster_id = cluster_id

        logger.debug(f"Exception created: {error_code.value} - {message}", exc_info=cause)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for logging and status reporting."""
        result = {
            "error": self.error_code.value,
            "message": self.message,
            "cluster_id": self.cluster_id,
            "transient": self.transient,
            "details": dict(self.details)
        }

        if self.cause:
            result["details"]["cause"] = str(self.cause)
            result["details"]["cause_type"] = type(self.cause).__name__

        return result


# Discovery Exceptions

class DiscoveryError(StretchNetworkingError):
    """Base exception for stable address discovery."""

    def __init__(self, cluster_id: str, message: str, error_code: ErrorCode = ErrorCode.DISCOVERY_FAILED,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=error_code,
            details={"cluster_id": cluster_id, **(details or {})},
            cause=cause,
            cluster_id=cluster_id
        )


class NoEligibleNodeError(DiscoveryError):
    """Raised when a cluster has no node that can provide a stable address."""

    def __init__(self, cluster_id: str, reason: str, node_count: int = 0):
        super().__init__(
            cluster_id=cluster_id,
            message=f"No eligible node found in cluster {cluster_id}: {reason}",
            error_code=ErrorCode.NO_ELIGIBLE_NODE,
            details={"reason": reason, "node_count": node_count}
        )


class NoStableAddressError(StretchNetworkingError):
    """Raised when neither the cluster nor the local cluster has a cached address."""

    def __init__(self, cluster_id: str, local_cluster_id: Optional[str] = None):
        super().__init__(
            message=(f"No stable node address found for cluster {cluster_id}. "
                     f"The address cache may not be properly initialized."),
            error_code=ErrorCode.NO_STABLE_ADDRESS,
            details={"cluster_id": cluster_id, "local_cluster_id": local_cluster_id},
            cluster_id=cluster_id
        )


# Gateway Exceptions

class GatewayUnavailableError(StretchNetworkingError):
    """Raised when no gateway is registered for a cluster id."""

    def __init__(self, cluster_id: str, known_clusters: Optional[List[str]] = None):
        super().__init__(
            message=f"No gateway registered for cluster {cluster_id}",
            error_code=ErrorCode.GATEWAY_UNAVAILABLE,
            details={"cluster_id": cluster_id, "known_clusters": known_clusters or []},
            cluster_id=cluster_id
        )


class GatewayError(StretchNetworkingError):
    """Raised when a gateway operation against a cluster control plane fails."""

    def __init__(self, cluster_id: str, operation: str, message: str,
                 status: Optional[int] = None, retryable: bool = False,
                 cause: Optional[Exception] = None):
        super().__init__(
            message=f"Gateway operation '{operation}' failed in cluster {cluster_id}: {message}",
            error_code=ErrorCode.GATEWAY_ERROR,
            details={"cluster_id": cluster_id, "operation": operation, "status": status},
            cause=cause,
            cluster_id=cluster_id
        )
        self.operation = operation
        self.status = status
        self.retryable = retryable


# Exposure Exceptions

class ExposureNotFoundError(StretchNetworkingError):
    """Raised when the exposure resource of a pod does not exist yet."""

    transient = True

    def __init__(self, cluster_id: str, namespace: str, name: str):
        super().__init__(
            message=f"Service {name} not found in namespace {namespace} of cluster {cluster_id}",
            error_code=ErrorCode.EXPOSURE_NOT_FOUND,
            details={"cluster_id": cluster_id, "namespace": namespace, "name": name},
            cluster_id=cluster_id
        )
        self.name = name
        self.namespace = namespace


class PortNotAssignedError(StretchNetworkingError):
    """Raised when a port is missing from an exposure or has no node port yet."""

    transient = True

    def __init__(self, cluster_id: str, namespace: str, name: str, port_name: str, reason: str):
        super().__init__(
            message=f"NodePort not found for port {port_name} in service {name}: {reason}",
            error_code=ErrorCode.PORT_NOT_ASSIGNED,
            details={
                "cluster_id": cluster_id,
                "namespace": namespace,
                "name": name,
                "port_name": port_name,
                "reason": reason
            },
            cluster_id=cluster_id
        )
        self.port_name = port_name


# Aggregation Exceptions

class AggregateError(StretchNetworkingError):
    """Raised when building listener or voter strings fails.

    Wraps the first failing sub-resolution in input order. Every failure is
    kept in ``failures`` as ``(key, exception)`` pairs.
    """

    def __init__(self, operation: str, failures: List[tuple]):
        key, first = failures[0]
        super().__init__(
            message=f"Failed to build {operation}: entry '{key}' could not be resolved: {first}",
            error_code=ErrorCode.AGGREGATE_FAILED,
            details={
                "operation": operation,
                "failed_entries": [str(failed_key) for failed_key, _ in failures]
            },
            cause=first,
            cluster_id=getattr(first, "cluster_id", None)
        )
        self.operation = operation
        self.key = key
        self.failures = failures

    @property
    def transient(self) -> bool:
        """An aggregate is transient only if every wrapped failure is."""
        return all(getattr(error, "transient", False) for _, error in self.failures)


# General Exceptions

class ValidationError(StretchNetworkingError):
    """Raised when input to the engine is invalid."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details
        )


class OperationTimeoutError(StretchNetworkingError):
    """Raised when a gateway operation exceeds its time budget."""

    def __init__(self, operation: str, timeout_seconds: float, cluster_id: Optional[str] = None):
        super().__init__(
            message=f"Operation '{operation}' timed out after {timeout_seconds} seconds",
            error_code=ErrorCode.TIMEOUT,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
            cluster_id=cluster_id
        )
