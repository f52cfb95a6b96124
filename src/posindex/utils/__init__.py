"""Utility exports for the posindex package."""

from .logger import get_logger, log_to_file, set_level

__all__ = [
    "get_logger",
    "log_to_file",
    "set_level",
]
