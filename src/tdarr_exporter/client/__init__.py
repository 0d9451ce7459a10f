"""
HTTP client for the Tdarr API: retrying transport and request client.
"""

from .request_client import API_KEY_HEADER, RequestClient, raw_json
from .transport import DEFAULT_RETRIES, RetryTransport

__all__ = [
    "API_KEY_HEADER",
    "DEFAULT_RETRIES",
    "RequestClient",
    "RetryTransport",
    "raw_json",
]
