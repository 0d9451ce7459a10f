"""
Exception taxonomy and error handling helpers.

Every error raised by the collection pipeline derives from TdarrExporterError so
that the collector can tell "expected" upstream failures apart from programming
errors. Transport level failures share the TransportError base.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

_module_logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class TdarrExporterError(Exception):
    """Base class for all exporter errors."""


class ValidationError(TdarrExporterError):
    """
    Exception raised when configuration validation fails.
    """

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field_name = field_name
        self.value = value


class TransportError(TdarrExporterError):
    """Base class for errors in the HTTP exchange with the upstream."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class UpstreamConnectionError(TransportError):
    """The upstream could not be reached, even after retrying."""


class ServerError(TransportError):
    """The upstream kept answering with a 5xx status after all retries."""

    def __init__(self, status_code: int, url: Optional[str] = None):
        super().__init__(f"received server error status code: {status_code}", url=url)
        self.status_code = status_code


class ClientError(TransportError):
    """The upstream answered with a 4xx status. Never retried."""

    def __init__(self, status_code: int, url: Optional[str] = None):
        super().__init__(f"received 4xx status code: {status_code}", url=url)
        self.status_code = status_code


class RedirectError(TransportError):
    """The upstream answered with a 3xx status. Redirects are not followed."""

    def __init__(self, status_code: int, location: Optional[str] = None,
                 url: Optional[str] = None):
        if location:
            message = f"received redirect status code: {status_code}, location: {location}"
        else:
            message = f"received redirect status code: {status_code}"
        super().__init__(message, url=url)
        self.status_code = status_code
        self.location = location


class DecodeError(TdarrExporterError):
    """A response body could not be decoded into the requested type."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ParseError(TdarrExporterError):
    """A string field could not be converted to a number."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field_name = field_name
        self.value = value


class ShapeError(TdarrExporterError):
    """
    A legacy positional row did not have the expected field types.

    Attributes:
        row_index: Index of the row inside the ``pies`` array
        field_index: Positional index of the offending field, None for whole-row errors
        field_name: Human readable name of the field
    """

    def __init__(self, message: str, row_index: Optional[int] = None,
                 field_index: Optional[int] = None, field_name: Optional[str] = None):
        super().__init__(message)
        self.row_index = row_index
        self.field_index = field_index
        self.field_name = field_name


class CycleAborted(TdarrExporterError):
    """
    A collection cycle could not produce a snapshot.

    Attributes:
        stage: Name of the cycle stage that failed
        cause: The underlying error
    """

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"collection aborted during {stage}: {cause}")
        self.stage = stage
        self.cause = cause


# ErrorSeverity -> (logging level, attach traceback)
_SEVERITY_LEVELS = {
    ErrorSeverity.DEBUG: (logging.DEBUG, True),
    ErrorSeverity.INFO: (logging.INFO, False),
    ErrorSeverity.WARNING: (logging.WARNING, False),
    ErrorSeverity.ERROR: (logging.ERROR, False),
    ErrorSeverity.CRITICAL: (logging.CRITICAL, True),
}


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log an error in a uniform format and optionally re-raise it.

    Args:
        error: The exception that occurred
        context: Where the error occurred, e.g. ``"config parsing exporter.toml"``
        severity: ErrorSeverity or its lower-case name
        reraise: Whether to re-raise ``error`` after logging
        logger: Logger to use, defaults to this module's logger
    """
    if isinstance(severity, str):
        severity = ErrorSeverity(severity.lower())
    level, with_traceback = _SEVERITY_LEVELS[severity]

    (logger or _module_logger).log(level, f"Error in {context}: {error}", exc_info=with_traceback)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, exit_code: int = 1,
                     include_traceback: bool = False, **kwargs) -> None:
    """Log a startup error and exit the process with ``exit_code``."""
    kwargs.setdefault("severity", ErrorSeverity.CRITICAL if include_traceback else ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", reraise=False, **kwargs)
    sys.exit(exit_code)
