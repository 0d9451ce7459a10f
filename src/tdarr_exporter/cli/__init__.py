"""
Command-line interface for the tdarr_exporter package.
"""

from .main import build_app, build_parser, configure_logging, main_cli

__all__ = ["build_app", "build_parser", "configure_logging", "main_cli"]
