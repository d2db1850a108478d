"""
NodePort allocation for clusters that do not have a real API server.
"""

from typing import Set, List, Optional
from dataclasses import dataclass, field

from ..exceptions import ValidationError
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PortRange:
    """Represents a range of ports."""
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Invalid port range: {self.start} > {self.end}")
        if self.start < 1 or self.end > 65535:
            raise ValueError(f"Port range {self.start}-{self.end} is outside valid range (1-65535)")

    def contains(self, port: int) -> bool:
        """Check if port is within this range."""
        return self.start <= port <= self.end

    def size(self) -> int:
        """Get the number of ports in this range."""
        return self.end - self.start + 1



@dataclass
class NodePortAllocator:
    """Hands out node ports from a range, lowest free port first."""

    port_range: PortRange = field(default_factory=lambda: PortRange(30000, 32767))
    allocated_ports: Set[int] = field(default_factory=set)

    def allocate(self, preferred: Optional[int] = None) -> int:
        """Allocate a node port.

        Args:
            preferred: Port to use if it is free and within the range

        Returns:
            The allocated port

        Raises:
            ValidationError: If the range is exhausted
        """
        if preferred is not None and self.port_range.contains(preferred) \
                and preferred not in self.allocated_ports:
            self.allocated_ports.add(preferred)
            return preferred

        for port in range(self.port_range.start, self.port_range.end + 1):
            if port not in self.allocated_ports:
                self.allocated_ports.add(port)
                return port

        logger.warning(f"NodePort range {self.port_range.start}-{self.port_range.end} is exhausted")
        raise ValidationError(
            f"NodePort range {self.port_range.start}-{self.port_range.end} is exhausted",
            field="node_port"
        )

    def release(self, port: Optional[int]) -> None:
        """Return a port to the range."""
        if port is not None:
            self.allocated_ports.discard(port)

    def release_all(self, ports: List[Optional[int]]) -> None:
        for port in ports:
            self.release(port)

    def is_allocated(self, port: int) -> bool:
        return port in self.allocated_ports

    def usage(self) -> dict:
        """Get port usage statistics."""
        total = self.port_range.size()
        used = len(self.allocated_ports)
        return {
            "total_ports": total,
            "allocated_ports": used,
            "available_ports": total - used,
            "allocation_percentage": (used / total) * 100 if total > 0 else 0
        }
