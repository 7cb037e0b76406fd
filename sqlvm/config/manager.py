#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration management module for the deployment controller.
This module loads the controller configuration and merges it over built-in defaults.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import ConfigurationError

logger = logging.getLogger("sqlvm.config")

DEFAULT_CONFIG_PATH = "~/.sqlvm/config.json"

DEFAULTS: Dict[str, Any] = {
    "azure": {
        "subscription_id": "",
        "admin_username": "sqladmin",
        "image": {
            "publisher": "MicrosoftSQLServer",
            "offer": "sql2022-ws2022",
            "sku": "standard-gen2",
        },
        "vnet": {
            "address_prefix": "10.10.0.0/16",
            "subnet_prefix": "10.10.1.0/24",
        },
        "key_vault": {
            "url": "",
            "resource_id": "",
        },
        "os_disk_type": "StandardSSD_LRS",
        "data_disk_type": "Standard_LRS",
    },
    "storage": {
        "data_disk_count": 4,
        "data_disk_size_gb": 10,
        "pool_count": 2,
        "disks_per_pool": 2,
        "pool_prefix": "Pool",
    },
    "database": {
        "name": "Testdata",
        "file_prefix": "Testdata",
    },
    "remote": {
        "port": 5986,
        "timeout": 3600,
        "ready_timeout": 900,
        "ready_interval": 15,
        "trust_dir": "~/.sqlvm/trust",
    },
    "logging": {
        "level": "INFO",
    },
}


def deep_update(dst: Dict[str, Any], src: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge src into dst and return dst. Dicts are merged recursively; lists/scalars are replaced."""
    for k, v in (src or {}).items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            deep_update(dst[k], v)
        else:
            dst[k] = v
    return dst


class ConfigManager:
    """Loader for the controller configuration."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.environ.get("SQLVM_CONFIG", DEFAULT_CONFIG_PATH)).expanduser()

    def load_config(self) -> Dict[str, Any]:
        """Load controller config.
        Precedence: env > JSON file > built-in defaults.
        - AZURE_SUBSCRIPTION_ID overrides azure.subscription_id
        - SQLVM_LOG_LEVEL overrides logging.level
        A missing file is not an error; invalid JSON is fatal.
        """
        cfg = copy.deepcopy(DEFAULTS)
        if self.path.exists():
            with self.path.open("r", encoding="utf-8") as f:
                try:
                    file_cfg = json.load(f)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(f"Invalid JSON in SQLVM_CONFIG='{self.path}': {e}") from e
            if not isinstance(file_cfg, dict):
                raise ConfigurationError(f"SQLVM_CONFIG='{self.path}' must contain a JSON object")
            deep_update(cfg, file_cfg)
            logger.debug("Loaded configuration from %s", self.path)
        subscription = os.environ.get("AZURE_SUBSCRIPTION_ID", "").strip()
        if subscription:
            cfg["azure"]["subscription_id"] = subscription
        level = os.environ.get("SQLVM_LOG_LEVEL", "").strip()
        if level:
            cfg["logging"]["level"] = level.upper()
        return cfg
