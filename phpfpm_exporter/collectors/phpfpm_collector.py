"""PHP-FPM scrape collector: fetch, parse, map and account for failures."""

import logging
import threading
import time
from typing import List, Optional

from ..config.models import EndpointConfig
from ..exceptions import FetchError
from ..utils.metrics import MetricDescriptor, MetricObservation, ScrapeResult
from .base import BaseCollector, safe_collect
from .metric_catalog import (
    LEGACY_ACTIVE_PROCESSES,
    LEGACY_SCRAPE_FAILURES,
    SCRAPE_FAILURES,
    TIMEOUT_SENTINEL_ACTIVE_PROCESSES,
    UP,
    all_descriptors,
)
from .metric_mapper import MetricMapper
from .status_parser import parse_status
from .transport import BaseFetcher, create_fetcher


class FailureCounter:
    """Monotonic count of failed scrapes, safe across threads."""

    def __init__(self, initial: int = 0):
        self._lock = threading.Lock()
        self._value = initial

    def increment(self) -> int:
        """Add one failure and return the new total."""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class PHPFPMCollector(BaseCollector):
    """
    Scrape one PHP-FPM status endpoint.

    Every scrape reports `up` and the failure counter. Field metrics are
    only reported when the status page was fetched.
    """

    def __init__(
        self,
        config: EndpointConfig,
        logger: logging.Logger,
        fetcher: Optional[BaseFetcher] = None,
        failure_counter: Optional[FailureCounter] = None,
        mapper: Optional[MetricMapper] = None
    ):
        """
        Initialize PHP-FPM collector.

        Args:
            config: Status endpoint configuration
            logger: Logger instance
            fetcher: Transport fetcher, selected from the endpoint by default
            failure_counter: Shared failure counter, a fresh one by default
            mapper: Field mapper
        """
        super().__init__(config, logger)
        self.fetcher = fetcher or create_fetcher(config, self.logger)
        self.failures = failure_counter or FailureCounter()
        self.mapper = mapper or MetricMapper(self.logger)

    def describe(self) -> List[MetricDescriptor]:
        return all_descriptors()

    @safe_collect
    async def collect(self) -> ScrapeResult:
        """
        Run one scrape.

        Returns:
            ScrapeResult: Reachability, failure count and field observations
        """
        start_time = time.monotonic()

        try:
            body = await self.fetcher.fetch()
        except FetchError as e:
            self.logger.error(
                f"Failed to get php-fpm status: {e}",
                extra={"error_kind": e.kind.value, "endpoint": self.config.url}
            )
            result = self.failed_result(e)
            result.duration_seconds = time.monotonic() - start_time
            return result

        fields = parse_status(body)
        failures = self.failures.value
        observations = self._scrape_observations(up=True, failures=failures)
        observations.extend(self.mapper.map(fields))

        self.logger.debug(
            f"Scraped {len(fields)} status fields",
            extra={"endpoint": self.config.url}
        )

        return ScrapeResult(
            up=True,
            failures=failures,
            observations=observations,
            duration_seconds=time.monotonic() - start_time
        )

    def failed_result(self, error: Exception) -> ScrapeResult:
        """
        Count a failed scrape and build its down-state result.

        A timeout additionally reports the legacy active_processes sentinel.
        """
        failures = self.failures.increment()
        observations = self._scrape_observations(up=False, failures=failures)

        if isinstance(error, FetchError) and error.kind.is_timeout:
            observations.append(MetricObservation(
                descriptor=LEGACY_ACTIVE_PROCESSES,
                value=TIMEOUT_SENTINEL_ACTIVE_PROCESSES,
                label_values=("active",)
            ))

        return ScrapeResult(
            up=False,
            failures=failures,
            observations=observations,
            error=error if isinstance(error, FetchError) else None
        )

    @staticmethod
    def _scrape_observations(up: bool, failures: int) -> List[MetricObservation]:
        return [
            MetricObservation(UP, 1.0 if up else 0.0),
            MetricObservation(SCRAPE_FAILURES, float(failures)),
            MetricObservation(LEGACY_SCRAPE_FAILURES, float(failures)),
        ]
