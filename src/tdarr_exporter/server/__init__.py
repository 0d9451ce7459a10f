"""
HTTP server exposing the exporter's metrics.
"""

from .http_server import HEALTHZ_PATH, ExporterApp, ExporterServer

__all__ = [
    "HEALTHZ_PATH",
    "ExporterApp",
    "ExporterServer",
]
