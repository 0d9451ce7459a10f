"""
Retrying HTTP transport.

``RetryTransport`` decorates another ``httpx.BaseTransport``. Every request the
client sends goes through one logical attempt here, which may cost up to
``retries + 1`` physical requests against the inner transport. Final responses are
classified into the exporter's error taxonomy, so callers only ever receive
responses with a status below 300.
"""

import logging
import time
from typing import Callable, Optional, Sequence

import httpx

from ..validation.exceptions import (
    ClientError,
    RedirectError,
    ServerError,
    UpstreamConnectionError,
)
from ..validation.strategies import DEFAULT_BACKOFF_SECONDS, BackoffRetryStrategy

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 2


def _schedule(retries: int, backoff: Sequence[float]) -> tuple:
    """Stretch or cut the backoff schedule so it has exactly ``retries`` entries."""
    if retries <= 0:
        return ()
    delays = list(backoff) or [0.0]
    while len(delays) < retries:
        delays.append(delays[-1])
    return tuple(delays[:retries])


class RetryTransport(httpx.BaseTransport):
    """
    Transport decorator adding retry with backoff and status classification.

    Connection failures and 5xx responses are retried; 4xx and 3xx responses are
    turned into ClientError and RedirectError without retrying. Redirects are
    never followed.
    """

    def __init__(
        self,
        inner: httpx.BaseTransport,
        retries: int = DEFAULT_RETRIES,
        backoff: Sequence[float] = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.inner = inner
        self.strategy = BackoffRetryStrategy(
            backoff=_schedule(retries, backoff),
            retry_exceptions=(httpx.TransportError,),
            sleep=sleep,
        )

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        # The body is read once; every attempt gets its own copy of these bytes.
        body = request.read()
        url = str(request.url)

        def attempt() -> httpx.Response:
            return self.inner.handle_request(self._clone(request, body))

        outcome = self.strategy.execute(
            attempt,
            should_retry=lambda response: response.status_code >= 500,
            context=f"{request.method} {url}",
            on_discard=self._discard,
        )

        if outcome.raised:
            raise UpstreamConnectionError(
                f"request failed after {outcome.attempts} attempts: {outcome.error}",
                url=url,
            ) from outcome.error

        return self._classify(outcome.result, url)

    def close(self) -> None:
        self.inner.close()

    @staticmethod
    def _clone(request: httpx.Request, body: bytes) -> httpx.Request:
        # Framing headers are recomputed from the buffered bytes.
        headers = request.headers.copy()
        headers.pop("transfer-encoding", None)
        headers.pop("content-length", None)
        return httpx.Request(
            method=request.method,
            url=request.url,
            headers=headers,
            content=body,
            extensions=request.extensions,
        )

    @staticmethod
    def _discard(response: httpx.Response) -> None:
        logger.debug(f"Discarding response with status {response.status_code}")
        response.close()

    def _classify(self, response: httpx.Response, url: str) -> httpx.Response:
        status = response.status_code
        if status >= 500:
            response.close()
            raise ServerError(status, url=url)
        if status >= 400:
            response.close()
            logger.error(f"Received client error status {status} from {url}")
            raise ClientError(status, url=url)
        if status >= 300:
            location: Optional[str] = response.headers.get("location")
            response.close()
            logger.debug(f"Received redirect status {status} from {url}, location: {location}")
            raise RedirectError(status, location=location, url=url)
        return response
