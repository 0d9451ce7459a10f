"""
Configuration management for the tdarr_exporter package.

Settings come from built-in defaults, an optional TOML file, environment
variables and command line flags, in increasing order of precedence.
"""

from .loader import (
    CONFIG_PATH_ENV,
    ENV_VARS,
    load_config,
    load_toml_file,
    settings_from_env,
    settings_from_toml,
)
from .validators import (
    LOG_LEVEL_CHOICES,
    validate_exporter_config,
    validate_log_level,
    validate_tdarr_url,
)

__all__ = [
    "CONFIG_PATH_ENV",
    "ENV_VARS",
    "LOG_LEVEL_CHOICES",
    "load_config",
    "load_toml_file",
    "settings_from_env",
    "settings_from_toml",
    "validate_exporter_config",
    "validate_log_level",
    "validate_tdarr_url",
]
