"""Main application entry point for the PHP-FPM exporter."""

import argparse
import logging
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from prometheus_client import generate_latest, start_http_server

from .collectors.phpfpm_collector import PHPFPMCollector
from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .services.prometheus_bridge import PrometheusBridge, create_registry
from .utils.logger import LOG_LEVELS, setup_logger


class ExporterApp:
    """
    PHP-FPM exporter application.

    Wires configuration, collector and metrics server together and serves
    until interrupted.
    """

    def __init__(self, config: ExporterConfig):
        """
        Initialize exporter application.

        Args:
            config: Validated exporter configuration
        """
        self.config = config
        self.logger = setup_logger("phpfpm_exporter", config.logging.level)
        self.collector = PHPFPMCollector(config.endpoint, self.logger)
        self.bridge = PrometheusBridge(self.collector, self.logger)
        self.registry = create_registry(self.bridge)
        self._stop = threading.Event()

    def scrape_once(self) -> bool:
        """
        Run one scrape and print its exposition to stdout.

        Returns:
            bool: True if php-fpm was reachable
        """
        output = generate_latest(self.registry)
        sys.stdout.write(output.decode('utf-8'))
        return self.bridge.last_result is not None and self.bridge.last_result.up

    def serve(self):
        """Start the metrics server and block until SIGINT/SIGTERM."""
        server = self.config.server
        endpoint = self.config.endpoint

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        start_http_server(server.port, addr=server.listen_address, registry=self.registry)

        self.logger.info(
            "Exporter started",
            extra={
                "listen": f"{server.listen_address}:{server.port}",
                "telemetry_path": server.telemetry_path,
                "endpoint": endpoint.url,
                "transport": endpoint.transport.value,
            }
        )

        self._stop.wait()
        self.logger.info("Exporter stopped")

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down...")
        self._stop.set()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for PHP-FPM status pages',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape php-fpm over FastCGI
  phpfpm-exporter --endpoint fastcgi://127.0.0.1:9000/status

  # Scrape the status page through the web server
  phpfpm-exporter --endpoint http://127.0.0.1/status --port 9253

  # Scrape once, print the metrics and exit
  phpfpm-exporter --endpoint fastcgi://127.0.0.1:9000/status --once
        """
    )

    parser.add_argument(
        '--config',
        help='Path to YAML configuration file'
    )
    parser.add_argument(
        '--endpoint',
        help='Status URL; fastcgi://host:port/path or http(s)://host/path'
    )
    parser.add_argument(
        '--fastcgi-timeout-ms',
        type=int,
        help='Timeout for fetching the status page, in milliseconds'
    )
    parser.add_argument(
        '--addr',
        help='Address for the metrics server to listen on'
    )
    parser.add_argument(
        '--port',
        type=int,
        help='Port for the metrics server'
    )
    parser.add_argument(
        '--telemetry-path',
        help='Path under which metrics are exposed'
    )
    parser.add_argument(
        '--log-level',
        choices=LOG_LEVELS,
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Scrape once, print the metrics and exit (status 1 when down)'
    )
    return parser


def load_config(args: argparse.Namespace) -> ExporterConfig:
    """
    Build configuration from file, environment and command-line flags.

    Flags take precedence over environment variables, which take precedence
    over the configuration file.
    """
    if args.config:
        config = ConfigLoader.load_from_file(args.config)
    else:
        config = ConfigLoader.load_from_dict()

    raw: Dict[str, Any] = config.model_dump()
    flags = {
        ("endpoint", "url"): args.endpoint,
        ("endpoint", "timeout_ms"): args.fastcgi_timeout_ms,
        ("server", "listen_address"): args.addr,
        ("server", "port"): args.port,
        ("server", "telemetry_path"): args.telemetry_path,
        ("logging", "level"): args.log_level,
    }
    for (section, key), value in flags.items():
        if value is not None:
            raw[section][key] = value

    return ExporterConfig(**raw)


def main(argv: Optional[List[str]] = None):
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
        app = ExporterApp(config)
    except Exception as e:
        logging.error(f"Exporter startup failed: {e}", exc_info=True)
        sys.exit(2)

    if args.once:
        sys.exit(0 if app.scrape_once() else 1)

    app.serve()


if __name__ == '__main__':
    main()
