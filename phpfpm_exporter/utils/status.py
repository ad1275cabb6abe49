"""Value kind and fetch error classification enumerations."""

from enum import Enum


class ValueKind(Enum):
    """Prometheus value type of a metric."""

    COUNTER = "counter"
    GAUGE = "gauge"


class MetricSchema(Enum):
    """Naming scheme a metric descriptor belongs to."""

    CURRENT = "current"
    LEGACY = "legacy"


class TransportKind(Enum):
    """Transport used to fetch the status page."""

    FASTCGI = "fastcgi"
    HTTP = "http"


class FetchErrorKind(Enum):
    """Classification of a failed status fetch."""

    DIAL_FAILED = "dial_failed"
    TIMEOUT = "timeout"
    READ_FAILED = "read_failed"
    REQUEST_FAILED = "request_failed"
    UNEXPECTED_STATUS = "unexpected_status"

    @property
    def is_timeout(self) -> bool:
        """Return True for timeout-classified failures."""
        return self is FetchErrorKind.TIMEOUT
