"""Metric data structures shared by the scrape pipeline."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import time

from .status import MetricSchema, ValueKind
from ..exceptions import FetchError, ObservationConstructionError

METRICS_NAMESPACE = "phpfpm"


@dataclass(frozen=True)
class StatusField:
    """One `key: value` line of the status page with an integer value."""

    name: str
    value: int


@dataclass(frozen=True)
class MetricDescriptor:
    """Static identity of an exported metric."""

    name: str
    documentation: str
    kind: ValueKind
    schema: MetricSchema
    labels: Tuple[str, ...] = ()

    @property
    def fq_name(self) -> str:
        """Fully qualified, namespaced metric name."""
        return f"{METRICS_NAMESPACE}_{self.name}"


@dataclass(frozen=True)
class MetricObservation:
    """A single value observed for a descriptor during one scrape."""

    descriptor: MetricDescriptor
    value: float
    label_values: Tuple[str, ...] = ()

    def __post_init__(self):
        """Reject observations whose labels do not match the descriptor."""
        if len(self.label_values) != len(self.descriptor.labels):
            raise ObservationConstructionError(
                f"{self.descriptor.fq_name}: expected {len(self.descriptor.labels)} "
                f"label values, got {len(self.label_values)}"
            )

    @property
    def labels(self) -> dict:
        return dict(zip(self.descriptor.labels, self.label_values))


@dataclass
class ScrapeResult:
    """Outcome of one fetch-parse-map cycle."""

    up: bool
    failures: int
    observations: List[MetricObservation] = field(default_factory=list)
    error: Optional[FetchError] = None
    duration_seconds: float = 0.0
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()

    def find(self, fq_name: str) -> List[MetricObservation]:
        """Return all observations emitted for a fully qualified metric name."""
        return [o for o in self.observations if o.descriptor.fq_name == fq_name]
