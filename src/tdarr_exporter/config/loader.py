"""
Configuration loading.

Settings are layered, later sources overriding earlier ones:

    built-in defaults < TOML file < environment variables < command line

Each source is flattened into a dict keyed by ExporterConfig field name; the
merged dict is validated by ``validate_exporter_config``.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..models.config import ExporterConfig
from ..validation import ErrorSeverity, handle_config_error
from .validators import validate_exporter_config

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "TDARR_EXPORTER_CONFIG"

# Environment variable -> config field
ENV_VARS = {
    "TDARR_URL": "url",
    "TDARR_API_KEY": "api_key",
    "VERIFY_SSL": "verify_ssl",
    "HTTP_TIMEOUT_SECONDS": "http_timeout_seconds",
    "TDARR_MAX_CONCURRENCY": "max_concurrency",
    "PROMETHEUS_PORT": "prometheus_port",
    "PROMETHEUS_PATH": "prometheus_path",
    "LOG_LEVEL": "log_level",
}

# (TOML table, key) -> config field
TOML_KEYS = {
    ("tdarr", "url"): "url",
    ("tdarr", "api_key"): "api_key",
    ("tdarr", "verify_ssl"): "verify_ssl",
    ("tdarr", "http_timeout_seconds"): "http_timeout_seconds",
    ("tdarr", "max_concurrency"): "max_concurrency",
    ("tdarr", "metrics_path"): "metrics_path",
    ("tdarr", "group_stats_path"): "group_stats_path",
    ("tdarr", "node_path"): "node_path",
    ("exporter", "port"): "prometheus_port",
    ("exporter", "path"): "prometheus_path",
    ("exporter", "log_level"): "log_level",
}


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        logger.error(f"{description} not found: {file_path}")
        raise FileNotFoundError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def settings_from_toml(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten the ``[tdarr]`` and ``[exporter]`` tables into config field names."""
    settings: Dict[str, Any] = {}
    for (table, key), field_name in TOML_KEYS.items():
        section = data.get(table, {})
        if isinstance(section, Mapping) and key in section:
            settings[field_name] = section[key]
    return settings


def settings_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Collect settings from environment variables. Empty variables are ignored."""
    return {
        field_name: environ[var]
        for var, field_name in ENV_VARS.items()
        if environ.get(var, "") != ""
    }


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    cli_overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ExporterConfig:
    """
    Build the exporter configuration from every source.

    Args:
        config_path: Optional TOML file; falls back to ``$TDARR_EXPORTER_CONFIG``
        cli_overrides: Values given on the command line; None values are ignored
        environ: Environment to read, defaults to ``os.environ``

    Returns:
        Validated ExporterConfig

    Raises:
        ValidationError: If a setting is missing or invalid
        FileNotFoundError: If the TOML file does not exist
    """
    environ = os.environ if environ is None else environ

    if config_path is None and environ.get(CONFIG_PATH_ENV):
        config_path = environ[CONFIG_PATH_ENV]

    raw: Dict[str, Any] = {}
    if config_path:
        raw.update(settings_from_toml(load_toml_file(Path(config_path))))
    raw.update(settings_from_env(environ))
    if cli_overrides:
        raw.update({k: v for k, v in cli_overrides.items() if v is not None})

    config = validate_exporter_config(raw)
    logger.debug(f"Loaded configuration: {config}")
    return config
