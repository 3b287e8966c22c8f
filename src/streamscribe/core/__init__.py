"""Core configuration, errors and logging."""

from .config import ConfigLoader, get_config, reset_config
from .logging import configure_logging, shutdown_logging

__all__ = ["ConfigLoader", "get_config", "reset_config", "configure_logging", "shutdown_logging"]
