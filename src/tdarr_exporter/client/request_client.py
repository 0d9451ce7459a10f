"""
Authenticated request client for the Tdarr API.

Builds request URLs from the configured base URL, attaches the API key, sends
requests through the retrying transport and decodes JSON responses into model
objects.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import httpx

from .. import __version__
from ..models.config import ExporterConfig
from ..validation.exceptions import DecodeError, UpstreamConnectionError
from ..validation.strategies import DEFAULT_BACKOFF_SECONDS
from .transport import DEFAULT_RETRIES, RetryTransport

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
USER_AGENT = f"tdarr-exporter/{__version__}"

QueryParams = Mapping[str, Union[str, List[str]]]
Target = Callable[[Any], Any]

# Upstream data is uncontrolled: huge numbers overflow int(), deep nesting
# exhausts the recursion limit.
_DECODE_ERRORS = (
    ValueError, TypeError, KeyError, AttributeError, OverflowError, RecursionError,
)


def raw_json(data: Any) -> Any:
    """Decode target that keeps the parsed JSON value unchanged."""
    return data


class RequestClient:
    """
    Synchronous client for one Tdarr server.

    The client is safe to share between threads; ``httpx.Client`` keeps a
    connection pool that concurrent fan-out workers draw from.
    """

    def __init__(
        self,
        config: ExporterConfig,
        transport: Optional[httpx.BaseTransport] = None,
        retries: int = DEFAULT_RETRIES,
        backoff: Sequence[float] = DEFAULT_BACKOFF_SECONDS,
    ):
        """
        Initialize the client.

        Args:
            config: Exporter configuration (base URL, API key, TLS and timeout)
            transport: Inner transport; defaults to ``httpx.HTTPTransport``
            retries: Number of retries per logical request
            backoff: Sleep before each retry, in seconds
        """
        self.config = config
        self.base_url = config.url_parsed
        inner = transport or httpx.HTTPTransport(verify=config.verify_ssl)

        headers = {"user-agent": USER_AGENT, "accept": "application/json"}
        if config.api_key:
            headers[API_KEY_HEADER] = config.api_key

        self._client = httpx.Client(
            transport=RetryTransport(inner, retries=retries, backoff=backoff),
            headers=headers,
            timeout=config.http_timeout_seconds,
            follow_redirects=False,
        )

    def __enter__(self) -> "RequestClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._client.close()

    def build_url(self, path: str, query_params: Optional[QueryParams] = None) -> httpx.URL:
        """
        Join ``path`` onto the base URL.

        The base URL's own path is kept as a prefix and its query parameters are
        kept alongside ``query_params``.
        """
        base_path = self.base_url.path.rstrip("/")
        url = self.base_url.copy_with(path=f"{base_path}/{path.lstrip('/')}")
        if query_params:
            url = url.copy_merge_params(query_params)
        return url

    def get(self, path: str, target: Target, query_params: Optional[QueryParams] = None) -> Any:
        """
        Send a GET request and decode the JSON response.

        Args:
            path: Path relative to the base URL
            target: Callable converting the decoded JSON; pass ``raw_json`` to
                keep the decoded value as is
            query_params: Extra query parameters

        Returns:
            Whatever ``target`` returns

        Raises:
            TransportError: On connection failures or non-2xx statuses
            DecodeError: If the body cannot be decoded into ``target``
        """
        url = self.build_url(path, query_params)
        response = self._send(url, lambda: self._client.get(url))
        return self._decode(response, target, url)

    def post(self, path: str, target: Target, payload: Any) -> Any:
        """
        Send a POST request with a JSON body and decode the JSON response.

        ``payload`` may be raw bytes, a JSON-serializable mapping or an object
        with a ``to_payload()`` method.
        """
        url = self.build_url(path)
        if isinstance(payload, (bytes, bytearray)):
            content = bytes(payload)
            response = self._send(url, lambda: self._client.post(
                url, content=content, headers={"content-type": "application/json"}
            ))
        else:
            if hasattr(payload, "to_payload"):
                payload = payload.to_payload()
            response = self._send(url, lambda: self._client.post(url, json=payload))
        return self._decode(response, target, url)

    @staticmethod
    def _send(url: httpx.URL, send: Callable[[], httpx.Response]) -> httpx.Response:
        # RetryTransport has already classified transport failures and statuses.
        # Whatever httpx raises past it, a bad Content-Encoding for one, lands here.
        try:
            return send()
        except httpx.DecodingError as e:
            raise DecodeError(f"failed to decode response body: {e}", url=str(url)) from e
        except httpx.HTTPError as e:
            raise UpstreamConnectionError(f"request failed: {e}", url=str(url)) from e

    def _decode(self, response: httpx.Response, target: Target, url: httpx.URL) -> Any:
        try:
            body = response.read()
        finally:
            response.close()
        logger.debug(f"Response from {url}: {body!r}")

        if not callable(target):
            raise DecodeError(f"cannot decode response into {target!r}", url=str(url))
        try:
            return target(response.json())
        except _DECODE_ERRORS as e:
            raise DecodeError(f"failed to decode response body: {e}", url=str(url)) from e
