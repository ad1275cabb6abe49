"""PHP-FPM status exporter for Prometheus."""

__version__ = "1.0.0"
