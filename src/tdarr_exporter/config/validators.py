"""
Configuration validation utilities.
"""

import logging
from typing import Any, Dict

import httpx

from ..models.config import (
    DEFAULT_GROUP_STATS_PATH,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_METRICS_PATH,
    DEFAULT_NODE_PATH,
    DEFAULT_PROMETHEUS_PATH,
    DEFAULT_PROMETHEUS_PORT,
    ExporterConfig,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_url_path,
)

logger = logging.getLogger(__name__)

LOG_LEVEL_CHOICES = ["trace", "debug", "info", "warn", "warning", "error", "fatal", "critical"]

# Aliases collapsed onto the stdlib level names.
_LOG_LEVEL_ALIASES = {"warn": "warning", "fatal": "critical"}

DEFAULT_SCHEME = "https"


def validate_log_level(value: Any, field_name: str = "log_level") -> str:
    """
    Validate a log level name, case-insensitively.

    Returns:
        The lower-case level, with ``warn`` and ``fatal`` mapped to
        ``warning`` and ``critical``; ``trace`` is kept as given
    """
    level = validate_enum_choice(value, LOG_LEVEL_CHOICES, field_name=field_name,
                                 case_sensitive=False)
    return _LOG_LEVEL_ALIASES.get(level, level)


def validate_tdarr_url(value: Any, field_name: str = "url") -> str:
    """
    Validate the Tdarr base URL.

    A URL given without a scheme is assumed to be https.

    Raises:
        ValidationError: If the URL is missing, unparsable or not http(s)
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} is required (set TDARR_URL, --url or [tdarr] url)",
            field_name=field_name,
            value=value
        )
    url = value.strip()
    if "://" not in url:
        logger.warning(f"No scheme in Tdarr URL '{url}', assuming {DEFAULT_SCHEME}://")
        url = f"{DEFAULT_SCHEME}://{url}"

    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ValidationError(f"{field_name} is not a valid URL: {e}",
                              field_name=field_name, value=value)
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValidationError(
            f"{field_name} must be an http or https URL with a host, got {value}",
            field_name=field_name,
            value=value
        )
    return url


def validate_exporter_config(raw: Dict[str, Any]) -> ExporterConfig:
    """
    Validate and create an ExporterConfig from merged raw settings.

    Args:
        raw: Settings keyed by ExporterConfig field name

    Returns:
        Validated ExporterConfig instance

    Raises:
        ValidationError: If validation fails
    """
    url = validate_tdarr_url(raw.get("url"))

    api_key = raw.get("api_key", "")
    if not isinstance(api_key, str):
        raise ValidationError("api_key must be a string", field_name="api_key")

    verify_ssl = validate_boolean(raw.get("verify_ssl", True), field_name="verify_ssl")

    http_timeout_seconds = validate_positive_float(
        raw.get("http_timeout_seconds", DEFAULT_HTTP_TIMEOUT_SECONDS),
        min_value=0.1,
        max_value=600.0,
        field_name="http_timeout_seconds",
    )

    max_concurrency = validate_positive_integer(
        raw.get("max_concurrency", DEFAULT_MAX_CONCURRENCY),
        min_value=1,
        max_value=64,
        field_name="max_concurrency",
    )

    prometheus_port = validate_positive_integer(
        raw.get("prometheus_port", DEFAULT_PROMETHEUS_PORT),
        min_value=1,
        max_value=65535,
        field_name="prometheus_port",
    )

    return ExporterConfig(
        url=url,
        api_key=api_key,
        verify_ssl=verify_ssl,
        http_timeout_seconds=http_timeout_seconds,
        max_concurrency=max_concurrency,
        metrics_path=validate_url_path(raw.get("metrics_path", DEFAULT_METRICS_PATH),
                                       field_name="metrics_path"),
        group_stats_path=validate_url_path(raw.get("group_stats_path", DEFAULT_GROUP_STATS_PATH),
                                           field_name="group_stats_path"),
        node_path=validate_url_path(raw.get("node_path", DEFAULT_NODE_PATH),
                                    field_name="node_path"),
        prometheus_port=prometheus_port,
        prometheus_path=validate_url_path(raw.get("prometheus_path", DEFAULT_PROMETHEUS_PATH),
                                          field_name="prometheus_path"),
        log_level=validate_log_level(raw.get("log_level", DEFAULT_LOG_LEVEL)),
    )
