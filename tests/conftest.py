"""Shared pytest configuration and fixtures."""

import pytest
from unittest.mock import AsyncMock, Mock

from phpfpm_exporter.collectors.phpfpm_collector import PHPFPMCollector
from phpfpm_exporter.config.models import EndpointConfig
from phpfpm_exporter.utils.logger import setup_logger


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def http_endpoint():
    return EndpointConfig(url="http://127.0.0.1/status", timeout_ms=1000)


@pytest.fixture
def fastcgi_endpoint():
    return EndpointConfig(url="fastcgi://127.0.0.1:9000/status", timeout_ms=1000)


@pytest.fixture
def mock_fetcher():
    """Fetcher whose fetch() is an AsyncMock returning an empty page."""
    fetcher = Mock()
    fetcher.fetch = AsyncMock(return_value=b"")
    return fetcher


@pytest.fixture
def collector(http_endpoint, logger, mock_fetcher):
    """PHP-FPM collector wired to the mock fetcher."""
    return PHPFPMCollector(http_endpoint, logger, fetcher=mock_fetcher)
