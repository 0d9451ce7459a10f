"""
HTTP exposition server.

A small WSGI application serves the metrics page, a health check and an index
page. It runs on a threading ``wsgiref`` server so that concurrent scrapes are
handled on separate threads.
"""

import json
import logging
import threading
import time
from socketserver import ThreadingMixIn
from typing import Callable, Iterable, List, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest

logger = logging.getLogger(__name__)

HEALTHZ_PATH = "/healthz"
INDEX_PATH = "/"

INDEX_TEMPLATE = """<html>
<head><title>Tdarr Exporter</title></head>
<body>
<h1>Tdarr Exporter</h1>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>
"""

StartResponse = Callable[[str, List[Tuple[str, str]]], None]


class ExporterApp:
    """
    WSGI application exposing a prometheus_client registry.

    Routes:
        <metrics_path>: Prometheus text exposition of ``registry``
        /healthz: ``{"status": "ok"}``
        /: HTML index linking the metrics page
    """

    def __init__(self, registry: CollectorRegistry, metrics_path: str = "/metrics"):
        self.registry = registry
        self.metrics_path = metrics_path

        self.scrape_duration = Histogram(
            "tdarr_scrape_duration_seconds",
            "Time spent serving a metrics scrape, including the Tdarr collection cycle",
            registry=registry,
        )
        self.scrape_requests = Counter(
            "tdarr_scrape_requests_total",
            "Metrics scrapes served, by HTTP status code",
            ["code"],
            registry=registry,
        )

    def __call__(self, environ: dict, start_response: StartResponse) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO", "") or "/"
        started = time.monotonic()

        if path == self.metrics_path:
            status, headers, body = self._metrics()
            self.scrape_duration.observe(time.monotonic() - started)
            self.scrape_requests.labels(code=status.split(" ", 1)[0]).inc()
        elif path == HEALTHZ_PATH:
            status, headers, body = self._healthz()
        elif path == INDEX_PATH:
            status, headers, body = self._index()
        else:
            status, headers, body = "404 Not Found", [("Content-Type", "text/plain")], b"Not Found\n"

        logger.info(f"{method} {path} {status.split(' ', 1)[0]} {time.monotonic() - started:.3f}s")
        start_response(status, headers + [("Content-Length", str(len(body)))])
        return [body]

    def _metrics(self) -> Tuple[str, List[Tuple[str, str]], bytes]:
        try:
            output = generate_latest(self.registry)
        except Exception as e:
            logger.error(f"Failed to render metrics: {e}", exc_info=True)
            return "500 Internal Server Error", [("Content-Type", "text/plain")], b"Internal Server Error\n"
        return "200 OK", [("Content-Type", CONTENT_TYPE_LATEST)], output

    @staticmethod
    def _healthz() -> Tuple[str, List[Tuple[str, str]], bytes]:
        body = json.dumps({"status": "ok"}).encode("utf-8")
        return "200 OK", [("Content-Type", "application/json")], body

    def _index(self) -> Tuple[str, List[Tuple[str, str]], bytes]:
        body = INDEX_TEMPLATE.format(metrics_path=self.metrics_path).encode("utf-8")
        return "200 OK", [("Content-Type", "text/html; charset=utf-8")], body


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _QuietHandler(WSGIRequestHandler):
    """Request lines are logged by the application instead of stderr."""

    def log_message(self, format, *args):
        pass


class ExporterServer:
    """
    Runs an ExporterApp on a background thread.
    """

    def __init__(self, app: ExporterApp, port: int, host: str = "0.0.0.0"):
        self.app = app
        self.host = host
        self.port = port
        self._server: Optional[ThreadingWSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def server_port(self) -> int:
        """Bound port; differs from ``port`` when port 0 was requested."""
        return self._server.server_port if self._server else self.port

    def start(self) -> None:
        if self._server is not None:
            logger.warning("Exporter server already running")
            return
        self._server = make_server(
            self.host, self.port, self.app,
            server_class=ThreadingWSGIServer,
            handler_class=_QuietHandler,
        )
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="ExporterServer",
            daemon=True
        )
        self._thread.start()
        logger.info(
            f"Serving metrics on http://{self.host}:{self.server_port}{self.app.metrics_path}"
        )

    def stop(self, timeout: float = 5.0) -> None:
        if self._server is None:
            return
        logger.info("Stopping exporter server...")
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._server = None
        self._thread = None
        logger.info("Exporter server stopped")
