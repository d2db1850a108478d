"""Cluster node models used for stable address discovery."""

from typing import Dict, List, Optional, Set
from pydantic import BaseModel, Field

from .base import NodeAddressType


ROLE_LABEL_PREFIX = "node-role.kubernetes.io/"


class NodeAddress(BaseModel):
    """One address reported in a node's status."""
    type: str = Field(..., description="Address type, e.g. ExternalIP or InternalIP")
    address: str = Field(..., min_length=1, description="Address value")

    @classmethod
    def external(cls, address: str) -> "NodeAddress":
        return cls(type=NodeAddressType.EXTERNAL_IP.value, address=address)

    @classmethod
    def internal(cls, address: str) -> "NodeAddress":
        return cls(type=NodeAddressType.INTERNAL_IP.value, address=address)


class ClusterNode(BaseModel):
    """A node of a member cluster as returned by its gateway."""
    name: str = Field(..., min_length=1, description="Node name")
    labels: Dict[str, str] = Field(default_factory=dict, description="Node labels")
    addresses: List[NodeAddress] = Field(default_factory=list, description="Node status addresses")

    @property
    def role_labels(self) -> Set[str]:
        """Label keys marking node roles."""
        return {key for key in self.labels if key.startswith(ROLE_LABEL_PREFIX)}

    def has_any_label(self, keys: List[str]) -> bool:
        """Check whether the node carries any of the given label keys."""
        return any(key in self.labels for key in keys)

    def first_address(self, address_type: str) -> Optional[str]:
        """Get the first address of a type, or None."""
        for address in self.addresses:
            if address.type == address_type:
                return address.address
        return None
