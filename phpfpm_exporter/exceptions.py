"""Exception hierarchy for the PHP-FPM exporter."""

from typing import Optional

from .utils.status import FetchErrorKind


class ExporterError(Exception):
    """Base class for all exporter errors."""
    pass


class ConfigurationError(ExporterError, ValueError):
    """Raised when exporter configuration is invalid."""
    pass


class FetchError(ExporterError):
    """
    Raised when the status page could not be retrieved.

    Fatal to the field data of a single scrape, never to the process.
    """

    kind: FetchErrorKind = FetchErrorKind.READ_FAILED

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is not None:
            return f"{message}: {self.cause}"
        return message


class DialFailedError(FetchError):
    """Raised when the FastCGI connection cannot be established."""
    kind = FetchErrorKind.DIAL_FAILED


class FetchTimeoutError(FetchError):
    """Raised when connecting or reading exceeds the configured timeout."""
    kind = FetchErrorKind.TIMEOUT


class ReadFailedError(FetchError):
    """Raised when the FastCGI response cannot be read or decoded."""
    kind = FetchErrorKind.READ_FAILED


class RequestFailedError(FetchError):
    """Raised when the HTTP request fails at the network level."""
    kind = FetchErrorKind.REQUEST_FAILED


class UnexpectedStatusError(FetchError):
    """Raised when the status page answers with an unexpected status code."""

    kind = FetchErrorKind.UNEXPECTED_STATUS

    def __init__(self, status_code: int, transport: str = "HTTP"):
        super().__init__(f"unexpected {transport} status: {status_code}")
        self.status_code = status_code


class ObservationConstructionError(ExporterError):
    """Raised when a metric observation does not match its descriptor."""
    pass
