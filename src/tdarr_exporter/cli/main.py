"""
Command-line interface for the Tdarr exporter.

This module provides the main CLI entry point: it parses command line flags,
loads and validates the configuration, wires the HTTP client, collection
pipeline and exposition server together and runs until SIGINT or SIGTERM.
"""

import argparse
import logging
import signal
import sys
import threading
import tomllib
from typing import List, Optional, Sequence, Tuple

import httpx
from prometheus_client import CollectorRegistry

from .. import __version__
from ..client import RequestClient
from ..collectors import StatsOrchestrator, TdarrCollector
from ..config import load_config
from ..models.config import ExporterConfig
from ..server import ExporterApp, ExporterServer
from ..validation import ValidationError, handle_cli_error

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"

# trace has no stdlib level of its own.
LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

logger = logging.getLogger(__name__)


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=LOG_LEVELS.get(level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tdarr-exporter",
        description="Export Tdarr statistics as Prometheus metrics.",
    )
    parser.add_argument("--url", type=str, help="Tdarr server URL (env TDARR_URL).")
    parser.add_argument("--api_key", type=str, help="Tdarr API key (env TDARR_API_KEY).")
    parser.add_argument(
        "--verify_ssl",
        type=str,
        help="Verify the Tdarr server's TLS certificate: true or false (env VERIFY_SSL).",
    )
    parser.add_argument(
        "--max_concurrency",
        type=str,
        help="Maximum parallel per-library requests (env TDARR_MAX_CONCURRENCY).",
    )
    parser.add_argument(
        "--prometheus_port",
        type=str,
        help="Port to serve metrics on (env PROMETHEUS_PORT).",
    )
    parser.add_argument(
        "--prometheus_path",
        type=str,
        help="Path to serve metrics on (env PROMETHEUS_PATH).",
    )
    parser.add_argument(
        "--log_level",
        type=str,
        help="trace, debug, info, warn, error or fatal (env LOG_LEVEL).",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Optional TOML configuration file (env TDARR_EXPORTER_CONFIG).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_app(
    config: ExporterConfig,
    transport: Optional[httpx.BaseTransport] = None,
    backoff: Optional[Sequence[float]] = None,
) -> Tuple[RequestClient, ExporterApp]:
    """
    Wire the request client, collection pipeline and WSGI application.

    Args:
        config: Validated configuration
        transport: Inner HTTP transport, for tests
        backoff: Retry backoff schedule, for tests

    Returns:
        The request client (to be closed on shutdown) and the WSGI application
    """
    client_kwargs = {"transport": transport}
    if backoff is not None:
        client_kwargs["backoff"] = backoff
    request_client = RequestClient(config, **client_kwargs)

    orchestrator = StatsOrchestrator(config, request_client)
    registry = CollectorRegistry()
    registry.register(TdarrCollector(orchestrator, instance_label=config.url))
    return request_client, ExporterApp(registry, metrics_path=config.prometheus_path)


def main_cli(argv: Optional[List[str]] = None) -> int:
    """
    Main command-line interface for the exporter.

    Raises:
        SystemExit: On configuration errors.
    """
    args = build_parser().parse_args(argv)
    configure_logging("info")

    cli_overrides = {
        "url": args.url,
        "api_key": args.api_key,
        "verify_ssl": args.verify_ssl,
        "max_concurrency": args.max_concurrency,
        "prometheus_port": args.prometheus_port,
        "prometheus_path": args.prometheus_path,
        "log_level": args.log_level,
    }
    try:
        config = load_config(config_path=args.config, cli_overrides=cli_overrides)
    except (ValidationError, FileNotFoundError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            include_traceback=False,
            logger=logger,
        )

    configure_logging(config.log_level)
    logger.info(f"Starting tdarr-exporter {__version__} for {config.url}")

    request_client, app = build_app(config)
    server = ExporterServer(app, port=config.prometheus_port)

    shutdown_requested = threading.Event()

    def global_signal_handler(signum, frame):
        """Handle signals globally to ensure a clean shutdown."""
        if shutdown_requested.is_set():
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info(
            f"Signal {signal.strsignal(signum)} received. Initiating graceful shutdown..."
        )
        shutdown_requested.set()

    signal.signal(signal.SIGINT, global_signal_handler)
    signal.signal(signal.SIGTERM, global_signal_handler)

    try:
        server.start()
    except OSError as e:
        request_client.close()
        handle_cli_error(
            error=e,
            context=f"binding port {config.prometheus_port}",
            exit_code=1,
            logger=logger,
        )

    try:
        while not shutdown_requested.wait(timeout=1.0):
            pass
    finally:
        server.stop()
        request_client.close()

    logger.info("Shutdown complete")
    return 0
