# Configuration loading and logging setup
from .log import LoggingConfig
from .manager import ConfigManager, deep_update

__all__ = ["ConfigManager", "LoggingConfig", "deep_update"]
