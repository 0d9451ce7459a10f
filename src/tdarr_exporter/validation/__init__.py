"""
Validation and error handling for the tdarr_exporter package.

This module provides the exception taxonomy shared by every layer of the
collection pipeline, the retry strategy used by the HTTP transport and the
validators used while loading configuration.
"""

# Core exception classes and error handling
from .exceptions import (
    ClientError,
    CycleAborted,
    DecodeError,
    ErrorSeverity,
    ParseError,
    RedirectError,
    ServerError,
    ShapeError,
    TdarrExporterError,
    TransportError,
    UpstreamConnectionError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)

# Retry strategies
from .strategies import (
    DEFAULT_BACKOFF_SECONDS,
    AttemptOutcome,
    BackoffRetryStrategy,
)

# Validation functions
from .validators import (
    parse_float_field,
    validate_boolean,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_url_path,
)

__all__ = [
    # Exceptions
    "TdarrExporterError",
    "ValidationError",
    "TransportError",
    "UpstreamConnectionError",
    "ServerError",
    "ClientError",
    "RedirectError",
    "DecodeError",
    "ParseError",
    "ShapeError",
    "CycleAborted",
    "ErrorSeverity",
    "handle_error",
    "handle_config_error",
    "handle_cli_error",
    # Strategies
    "DEFAULT_BACKOFF_SECONDS",
    "AttemptOutcome",
    "BackoffRetryStrategy",
    # Validators
    "parse_float_field",
    "validate_boolean",
    "validate_enum_choice",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_url_path",
]
