"""Logging configuration passed explicitly to each pipeline component."""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

ROOT_LOGGER = "sqlvm"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclasses.dataclass
class LoggingConfig:
    """Verbosity and format for the controller loggers."""

    level: str = "INFO"
    format: str = DEFAULT_FORMAT

    @classmethod
    def from_cfg(cls, cfg: Optional[Dict[str, Any]]) -> "LoggingConfig":
        log_cfg = (cfg or {}).get("logging") or {}
        return cls(
            level=str(log_cfg.get("level") or "INFO").upper(),
            format=str(log_cfg.get("format") or DEFAULT_FORMAT),
        )

    def apply(self, name: str = ROOT_LOGGER) -> logging.Logger:
        """Set the level and attach one stderr handler to logger ``name`` (``sqlvm`` by default)."""
        logger = logging.getLogger(name)
        try:
            logger.setLevel(getattr(logging, self.level))
        except AttributeError:
            logger.setLevel(logging.INFO)
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(self.format))
            logger.addHandler(handler)
        return logger

    def get_logger(self, component: str) -> logging.Logger:
        return logging.getLogger(f"{ROOT_LOGGER}.{component}")
