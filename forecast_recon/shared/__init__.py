"""
Shared Layer Package

Constants, environment helpers and logging configuration used across the
other layers.
"""

from .consts import TOTAL_GROUP_KEY, UNASSIGNED_PREFIX, EnumEnvironment, EnumLogLevel
from .env import load_secret_file_variables
from .logging import configure_logging, get_logger, update_logging_from_settings

__all__ = [
    "EnumEnvironment",
    "EnumLogLevel",
    "TOTAL_GROUP_KEY",
    "UNASSIGNED_PREFIX",
    "configure_logging",
    "get_logger",
    "load_secret_file_variables",
    "update_logging_from_settings",
]
