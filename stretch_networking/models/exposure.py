"""Exposure resource models: the per-pod NodePort Service."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class ExposurePort(BaseModel):
    """A named port of an exposure resource."""
    name: str = Field(..., min_length=1, description="Logical port name")
    port: int = Field(..., ge=1, le=65535, description="Service port")
    target_port: int = Field(..., ge=1, le=65535, description="Container port")
    protocol: str = Field(default="TCP", description="Port protocol")
    node_port: Optional[int] = Field(
        default=None,
        description="External port assigned by the cluster, None until allocated"
    )

    @property
    def is_assigned(self) -> bool:
        """Check whether the cluster has assigned an external port."""
        return bool(self.node_port)


class ExposureResource(BaseModel):
    """Externally addressable object for exactly one pod."""
    name: str = Field(..., min_length=1, description="Derived resource name")
    namespace: str = Field(..., min_length=1, description="Namespace of the resource")
    selector: Dict[str, str] = Field(default_factory=dict, description="Pod selector")
    ports: List[ExposurePort] = Field(default_factory=list, description="Ordered ports")
    labels: Dict[str, str] = Field(default_factory=dict, description="Ownership labels")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Annotations")
    service_type: str = Field(default="NodePort", description="Service type")
    external_traffic_policy: str = Field(default="Local", description="External traffic policy")

    @field_validator('ports')
    @classmethod
    def validate_unique_port_names(cls, v):
        """Port names must be unique within a resource."""
        names = [port.name for port in v]
        if len(names) != len(set(names)):
            raise ValueError("Exposure port names must be unique")
        return v

    def get_port(self, name: str) -> Optional[ExposurePort]:
        """Get a port by its logical name."""
        for port in self.ports:
            if port.name == name:
                return port
        return None

    def assigned_ports(self) -> Dict[str, int]:
        """Get the assigned external ports keyed by port name."""
        return {port.name: port.node_port for port in self.ports if port.is_assigned}

    def is_fully_assigned(self) -> bool:
        """Check whether every port has an external port."""
        return all(port.is_assigned for port in self.ports)
