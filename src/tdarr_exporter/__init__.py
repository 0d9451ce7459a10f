"""
Prometheus exporter for Tdarr media-processing clusters.

Each scrape polls the Tdarr statistics API, normalizes library breakdowns from
both the legacy and the current response format, and republishes the result as
Prometheus metrics.
"""

__version__ = "0.1.0"
