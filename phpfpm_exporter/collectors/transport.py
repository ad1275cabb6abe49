"""Status page fetchers for the FastCGI and HTTP transports."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict

import httpx

from ..config.models import EndpointConfig
from ..exceptions import (
    ConfigurationError,
    DialFailedError,
    FetchTimeoutError,
    ReadFailedError,
    RequestFailedError,
    UnexpectedStatusError,
)
from ..services.fastcgi_client import FastCGIConnection, FastCGIProtocolError
from ..utils.status import TransportKind


class BaseFetcher(ABC):
    """Retrieve the raw status payload from one endpoint."""

    def __init__(self, endpoint: EndpointConfig, logger: logging.Logger):
        self.endpoint = endpoint
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    async def fetch(self) -> bytes:
        """
        Fetch the status page once.

        Returns:
            bytes: Raw status payload

        Raises:
            FetchError: Classified transport failure
        """
        pass


class FastCGIFetcher(BaseFetcher):
    """Query the PHP-FPM status script directly over FastCGI."""

    def build_params(self) -> Dict[str, str]:
        """CGI environment for the status request."""
        path = self.endpoint.status_path
        return {
            "SCRIPT_FILENAME": path,
            "SCRIPT_NAME": path,
            "REQUEST_METHOD": "GET",
            "QUERY_STRING": self.endpoint.query_string,
            "CONTENT_LENGTH": "0",
            "SERVER_PROTOCOL": "HTTP/1.1",
            "GATEWAY_INTERFACE": "CGI/1.1",
        }

    async def fetch(self) -> bytes:
        """
        Connect, send a single GET and read the response.

        The connection is closed on every exit path.
        """
        endpoint = self.endpoint
        self.logger.debug(f"Dialing FastCGI {endpoint.host}:{endpoint.port}")

        try:
            connection = await FastCGIConnection.open(
                endpoint.host, endpoint.port, endpoint.timeout, self.logger
            )
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError("fastcgi dial timed out", e)
        except OSError as e:
            raise DialFailedError("fastcgi dial failed", e)

        try:
            response = await connection.get(self.build_params())
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError("fastcgi get timed out", e)
        except (OSError, asyncio.IncompleteReadError, FastCGIProtocolError) as e:
            raise ReadFailedError("fastcgi get failed", e)
        finally:
            await connection.close()

        if response.status_code != 0 and not 200 <= response.status_code < 300:
            raise UnexpectedStatusError(response.status_code, transport="FastCGI")

        if response.app_status:
            self.logger.warning(
                f"FastCGI responder exited with app status {response.app_status}",
                extra={
                    "endpoint": endpoint.url,
                    "stderr": response.stderr.decode('utf-8', 'replace'),
                }
            )

        return response.body


class HTTPFetcher(BaseFetcher):
    """Fetch the status page through the web server."""

    async def fetch(self) -> bytes:
        """Issue a GET, following redirects, and return the fully read body."""
        self.logger.debug(f"Requesting {self.endpoint.url}")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self.endpoint.url,
                    timeout=self.endpoint.timeout,
                    follow_redirects=True
                )
        except httpx.TimeoutException as e:
            raise FetchTimeoutError("HTTP request timed out", e)
        except httpx.RequestError as e:
            raise RequestFailedError("HTTP request failed", e)

        if response.status_code != 200:
            raise UnexpectedStatusError(response.status_code)

        return response.content


FETCHERS = {
    TransportKind.FASTCGI: FastCGIFetcher,
    TransportKind.HTTP: HTTPFetcher,
}


def create_fetcher(endpoint: EndpointConfig, logger: logging.Logger) -> BaseFetcher:
    """
    Select the fetcher for the endpoint's transport.

    Raises:
        ConfigurationError: If no fetcher handles the transport
    """
    fetcher_class = FETCHERS.get(endpoint.transport)
    if fetcher_class is None:
        raise ConfigurationError(f"Unsupported transport: {endpoint.transport}")
    return fetcher_class(endpoint, logger)
