"""Pydantic configuration models for the exporter."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from urllib.parse import urlsplit

from ..utils.status import TransportKind

DEFAULT_STATUS_PATH = "/status"

FASTCGI_SCHEMES = ("fastcgi", "tcp")
HTTP_SCHEMES = ("http", "https")


class EndpointConfig(BaseModel):
    """Where and how to fetch the PHP-FPM status page."""

    model_config = ConfigDict(frozen=True)

    url: str = "http://127.0.0.1:9000/status"
    timeout_ms: int = Field(default=5000, ge=1)

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate scheme and host of the endpoint URL."""
        parts = urlsplit(v)
        if parts.scheme not in FASTCGI_SCHEMES + HTTP_SCHEMES:
            raise ValueError(
                'URL scheme must be one of: ' + ', '.join(FASTCGI_SCHEMES + HTTP_SCHEMES)
            )
        if not parts.hostname:
            raise ValueError('URL must include a host')
        if parts.scheme in FASTCGI_SCHEMES and parts.port is None:
            raise ValueError('FastCGI URL must include a port')
        return v

    @property
    def transport(self) -> TransportKind:
        if urlsplit(self.url).scheme in FASTCGI_SCHEMES:
            return TransportKind.FASTCGI
        return TransportKind.HTTP

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname

    @property
    def port(self) -> Optional[int]:
        return urlsplit(self.url).port

    @property
    def status_path(self) -> str:
        """Status script path, `/status` when the URL has none."""
        return urlsplit(self.url).path or DEFAULT_STATUS_PATH

    @property
    def query_string(self) -> str:
        return urlsplit(self.url).query

    @property
    def timeout(self) -> float:
        """Fetch timeout in seconds."""
        return self.timeout_ms / 1000.0


class ServerConfig(BaseModel):
    """Metrics HTTP server configuration."""
    listen_address: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    telemetry_path: str = "/metrics"

    @field_validator('telemetry_path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith('/'):
            raise ValueError('Telemetry path must start with /')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalise and validate the log level name."""
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f'Unknown log level: {v}')
        return v


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
