"""Resolved endpoint models and their configuration string renderings."""

from typing import Tuple, Union
from pydantic import BaseModel, Field


class Endpoint(BaseModel):
    """An externally routable ``address:port`` for one pod port.

    Derived on every resolution and never stored. ``used_fallback`` is set when
    the address came from the local cluster because the pod's own cluster had
    no cached address.
    """
    address: str = Field(..., min_length=1, description="Stable node address")
    port: int = Field(..., ge=1, le=65535, description="Assigned external port")
    cluster_id: str = Field(..., description="Cluster the pod runs in")
    address_cluster_id: str = Field(..., description="Cluster the address was cached for")
    used_fallback: bool = Field(default=False, description="Address came from the local cluster")

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


class ListenerEntry(BaseModel):
    """An advertised listener of a member."""
    listener_name: str = Field(..., min_length=1)
    endpoint: Endpoint

    def render(self) -> str:
        return f"{self.listener_name}://{self.endpoint}"


class VoterEntry(BaseModel):
    """A controller quorum voter."""
    node_id: int = Field(..., ge=0)
    endpoint: Endpoint

    def render(self) -> str:
        return f"{self.node_id}@{self.endpoint}"


class ControllerPodInfo(BaseModel):
    """A controller pod taking part in the quorum."""
    node_id: int = Field(..., ge=0, description="Node id of the controller")
    pod_name: str = Field(..., min_length=1, description="Pod name")
    cluster_id: str = Field(..., min_length=1, description="Cluster the pod runs in")

    @classmethod
    def coerce(cls, value: Union["ControllerPodInfo", Tuple[int, str, str]]) -> "ControllerPodInfo":
        """Accept either a model or a ``(node_id, pod_name, cluster_id)`` tuple."""
        if isinstance(value, cls):
            return value
        node_id, pod_name, cluster_id = value
        return cls(node_id=node_id, pod_name=pod_name, cluster_id=cluster_id)
