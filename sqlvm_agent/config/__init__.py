# Configuration module
from .manager import AGENT_DEFAULTS, ConfigManager

__all__ = ["AGENT_DEFAULTS", "ConfigManager"]
