"""Utility modules for logging and request context."""

from iacgraph.utils.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
