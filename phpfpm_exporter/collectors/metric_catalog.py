"""
Catalog of exported metrics.

Every status field is described once in FIELD_MAPPINGS, which names both its
current and its legacy metric. The legacy names predate the Prometheus
naming conventions and are kept so that existing dashboards keep working;
both schemas are emitted from the same row and always carry the same value.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..utils.metrics import MetricDescriptor
from ..utils.status import MetricSchema, ValueKind

COUNTER = ValueKind.COUNTER
GAUGE = ValueKind.GAUGE

# Legacy active_processes value emitted when the status fetch times out.
# Makes pool exhaustion visible on old dashboards; it is not a measurement.
TIMEOUT_SENTINEL_ACTIVE_PROCESSES = 1000.0


def _current(name: str, documentation: str, kind: ValueKind, labels: Tuple[str, ...] = ()) -> MetricDescriptor:
    return MetricDescriptor(name, documentation, kind, MetricSchema.CURRENT, labels)


def _legacy(name: str, documentation: str, kind: ValueKind, labels: Tuple[str, ...] = ()) -> MetricDescriptor:
    return MetricDescriptor(name, documentation, kind, MetricSchema.LEGACY, labels)


UP = _current("up", "able to contact php-fpm", GAUGE)
SCRAPE_FAILURES = _current(
    "scrape_failures_total", "Number of errors while scraping php_fpm", COUNTER
)
ACCEPTED_CONNECTIONS = _current(
    "accepted_connections_total", "Total number of accepted connections", COUNTER
)
LISTEN_QUEUE = _current(
    "listen_queue_connections",
    "Number of connections that have been initiated but not yet accepted",
    GAUGE,
)
LISTEN_QUEUE_MAX = _current(
    "listen_queue_max_connections",
    "Max number of connections the listen queue has reached since FPM start",
    COUNTER,
)
LISTEN_QUEUE_LENGTH = _current(
    "listen_queue_length_connections",
    "The length of the socket queue, dictating maximum number of pending connections",
    GAUGE,
)
PROCESSES = _current("processes_total", "process count", GAUGE, ("state",))
ACTIVE_MAX_PROCESSES = _current(
    "active_max_processes", "Maximum active process count", COUNTER
)
MAX_CHILDREN_REACHED = _current(
    "max_children_reached_total",
    "Number of times the process limit has been reached",
    COUNTER,
)
SLOW_REQUESTS = _current(
    "slow_requests_total",
    "Number of requests that exceed request_slowlog_timeout",
    COUNTER,
)

LEGACY_SCRAPE_FAILURES = _legacy(
    "scrape_failures", "Number of errors while scraping php_fpm", COUNTER
)
LEGACY_ACCEPTED_CONN = _legacy("accepted_conn", "Total of accepted connections", COUNTER)
LEGACY_LISTEN_QUEUE = _legacy(
    "listen_queue",
    "Number of connections that have been initiated but not yet accepted",
    GAUGE,
)
LEGACY_MAX_LISTEN_QUEUE = _legacy(
    "max_listen_queue",
    "Max. connections the listen queue has reached since FPM start",
    COUNTER,
)
LEGACY_LISTEN_QUEUE_LENGTH = _legacy(
    "listen_queue_length", "Maximum number of connections that can be queued", GAUGE
)
LEGACY_IDLE_PROCESSES = _legacy("idle_processes", "Idle process count", GAUGE, ("state",))
LEGACY_ACTIVE_PROCESSES = _legacy(
    "active_processes", "Active process count", GAUGE, ("state",)
)
LEGACY_TOTAL_PROCESSES = _legacy("total_processes", "Total process count", GAUGE)
LEGACY_MAX_ACTIVE_PROCESSES = _legacy(
    "max_active_processes", "Maximum active process count", COUNTER
)
LEGACY_MAX_CHILDREN_REACHED = _legacy(
    "max_children_reached",
    "Number of times the process limit has been reached",
    COUNTER,
)
LEGACY_SLOW_REQUESTS = _legacy(
    "slow_requests",
    "Number of requests that exceed request_slowlog_timeout",
    COUNTER,
)


@dataclass(frozen=True)
class FieldMapping:
    """How one status field is published in both schemas."""

    field_name: str
    current: Optional[MetricDescriptor]
    legacy: Optional[MetricDescriptor]
    label_values: Tuple[str, ...] = ()

    @property
    def descriptors(self) -> List[MetricDescriptor]:
        return [d for d in (self.current, self.legacy) if d is not None]


FIELD_MAPPINGS = {
    m.field_name: m
    for m in (
        FieldMapping("accepted conn", ACCEPTED_CONNECTIONS, LEGACY_ACCEPTED_CONN),
        FieldMapping("listen queue", LISTEN_QUEUE, LEGACY_LISTEN_QUEUE),
        FieldMapping("max listen queue", LISTEN_QUEUE_MAX, LEGACY_MAX_LISTEN_QUEUE),
        FieldMapping("listen queue len", LISTEN_QUEUE_LENGTH, LEGACY_LISTEN_QUEUE_LENGTH),
        FieldMapping("idle processes", PROCESSES, LEGACY_IDLE_PROCESSES, ("idle",)),
        FieldMapping("active processes", PROCESSES, LEGACY_ACTIVE_PROCESSES, ("active",)),
        FieldMapping("max active processes", ACTIVE_MAX_PROCESSES, LEGACY_MAX_ACTIVE_PROCESSES),
        FieldMapping("max children reached", MAX_CHILDREN_REACHED, LEGACY_MAX_CHILDREN_REACHED),
        FieldMapping("slow requests", SLOW_REQUESTS, LEGACY_SLOW_REQUESTS),
        # legacy only
        FieldMapping("total processes", None, LEGACY_TOTAL_PROCESSES),
    )
}


def all_descriptors() -> List[MetricDescriptor]:
    """Every descriptor, scrape-level first, without duplicates."""
    descriptors = [UP, SCRAPE_FAILURES, LEGACY_SCRAPE_FAILURES]
    for mapping in FIELD_MAPPINGS.values():
        for descriptor in mapping.descriptors:
            if descriptor not in descriptors:
                descriptors.append(descriptor)
    return descriptors
