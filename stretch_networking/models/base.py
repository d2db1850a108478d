"""Base data models and enums for the stretch cluster networking engine."""

import itertools
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


_reconciliation_ids = itertools.count(1)


class NodeAddressType(str, Enum):
    """Kubernetes node address types."""
    EXTERNAL_IP = "ExternalIP"
    INTERNAL_IP = "InternalIP"
    HOSTNAME = "Hostname"
    EXTERNAL_DNS = "ExternalDNS"
    INTERNAL_DNS = "InternalDNS"


class Reconciliation(BaseModel):
    """Context of one reconciliation pass of a stretch cluster.

    Identifies the logical instance whose pods are being exposed. Its string
    form prefixes log messages and its name is used in ownership labels.
    """
    model_config = ConfigDict(frozen=True)

    kind: str = Field(default="Kafka", description="Kind of the custom resource")
    namespace: str = Field(..., min_length=1, description="Namespace of the custom resource")
    name: str = Field(..., min_length=1, description="Name of the custom resource")
    trigger: str = Field(default="watch", description="What started this reconciliation")
    id: int = Field(default_factory=lambda: next(_reconciliation_ids), description="Sequence id")

    def __str__(self) -> str:
        return f"Reconciliation #{self.id}({self.trigger}) {self.kind}({self.namespace}/{self.name})"

    def as_log_context(self, cluster_id: Optional[str] = None) -> dict:
        """Get the fields attached to log records for this reconciliation."""
        context = {
            "reconciliation_id": self.id,
            "kind": self.kind,
            "namespace": self.namespace,
            "instance": self.name
        }
        if cluster_id:
            context["cluster_id"] = cluster_id
        return context
