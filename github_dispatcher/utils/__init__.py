"""Utility modules for github-dispatcher."""

from .logging import get_logger, parse_log_level, setup_logging

__all__ = [
    "get_logger",
    "parse_log_level",
    "setup_logging",
]
