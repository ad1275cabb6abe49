"""Base collector abstract class."""

from abc import ABC, abstractmethod
from typing import Any, List
import logging
from functools import wraps

from ..utils.metrics import MetricDescriptor, ScrapeResult


class BaseCollector(ABC):
    """Abstract base class for scrape collectors."""

    def __init__(self, config: Any, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            config: Collector-specific configuration
            logger: Logger instance
        """
        self.config = config
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def collect(self) -> ScrapeResult:
        """
        Run one scrape and return its result.

        Returns:
            ScrapeResult: Scrape outcome with all observations

        Note:
            Implementations should use @safe_collect so that no error
            escapes a scrape.
        """
        pass

    @abstractmethod
    def describe(self) -> List[MetricDescriptor]:
        """Return every descriptor this collector can emit."""
        pass

    @abstractmethod
    def failed_result(self, error: Exception) -> ScrapeResult:
        """Build the down-state result for an unexpected scrape error."""
        pass


def safe_collect(func):
    """
    Decorator to handle collector exceptions gracefully.

    Any exception escaping the wrapped scrape is logged with its traceback
    and turned into the collector's down-state result.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped function that never raises
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(f"Scrape failed: {e}", exc_info=True)
            return self.failed_result(e)
    return wrapper
