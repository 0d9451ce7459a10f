"""
Configuration data models.

This module contains the configuration value object shared by the HTTP client,
the collection pipeline and the exporter server.
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx

DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_METRICS_PATH = "/api/v2/cruddb"
DEFAULT_GROUP_STATS_PATH = "/api/v2/stats/get-pies"
DEFAULT_NODE_PATH = "/api/v2/get-nodes"
DEFAULT_PROMETHEUS_PORT = 9090
DEFAULT_PROMETHEUS_PATH = "/metrics"
DEFAULT_LOG_LEVEL = "info"


@dataclass
class ExporterConfig:
    """
    Configuration for one exporter process, built by ``config.loader``.
    """

    # Base URL of the Tdarr server, including scheme. May carry a base path.
    url: str
    # Static API key sent as the x-api-key header. Empty means no header.
    api_key: str = field(default="", repr=False)
    verify_ssl: bool = True
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    # Upper bound on parallel per-library requests.
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    # Upstream endpoints, relative to the base URL.
    metrics_path: str = DEFAULT_METRICS_PATH
    group_stats_path: str = DEFAULT_GROUP_STATS_PATH
    node_path: str = DEFAULT_NODE_PATH

    # [exporter]
    prometheus_port: int = DEFAULT_PROMETHEUS_PORT
    prometheus_path: str = DEFAULT_PROMETHEUS_PATH
    log_level: str = DEFAULT_LOG_LEVEL

    url_parsed: Optional[httpx.URL] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.url_parsed is None:
            self.url_parsed = httpx.URL(self.url)

    @property
    def instance_name(self) -> str:
        """Hostname of the upstream, used in log messages."""
        return self.url_parsed.host
