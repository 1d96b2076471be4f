"""Core application modules."""

from qbd_assistant.core.config import ConductorConfig, ConfigurationMissingError, settings
from qbd_assistant.core.logging import LoggerAdapter, get_logger, setup_logging

__all__ = [
    "settings",
    "ConductorConfig",
    "ConfigurationMissingError",
    "get_logger",
    "setup_logging",
    "LoggerAdapter",
]
