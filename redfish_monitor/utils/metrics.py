"""Metric data structures for collectors."""

from dataclasses import dataclass, field
from typing import Optional, Dict
import time


@dataclass
class MetricSample:
    """Single gauge sample extracted from a Redfish resource."""

    name: str  # Namespace-prefixed metric name
    value: float
    labels: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()
