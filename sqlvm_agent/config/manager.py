#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration management module for the storage agent.
This module loads the agent configuration dropped on the VM as custom data.
"""
import base64
import binascii
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from sqlvm.config import deep_update

logger = logging.getLogger("sqlvm-agent")

DEFAULT_AGENT_CONFIG = r"C:\AzureData\CustomData.bin"

AGENT_DEFAULTS: Dict[str, Any] = {
    "bind_host": "0.0.0.0",
    "bind_port": 5986,
    "security": {
        "tls": {
            "enabled": True,
            "cert_file": r"C:\ProgramData\sqlvm-agent\tls\agent.crt",
            "key_file": r"C:\ProgramData\sqlvm-agent\tls\agent.key",
        },
    },
    "auth": {},
    "defaults": {
        "powershell": "powershell.exe",
        "sqlcmd": "sqlcmd",
        "sql_server": "localhost",
        "drive_ready_timeout": 120,
        "drive_poll_interval": 2,
        "firewall_rule_name": "SQL Server (TCP 1433)",
        "sql_port": 1433,
    },
    "logging": {"level": "INFO"},
}


def _decode(raw: bytes, source: str) -> Dict[str, Any]:
    """Parse plain JSON, falling back to base64-encoded JSON."""
    text = raw.decode("utf-8-sig").strip()
    if not text:
        return {}
    if not text.startswith("{"):
        try:
            text = base64.b64decode(text, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise RuntimeError(f"Invalid agent config in '{source}': neither JSON nor base64 JSON") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Invalid JSON in SQLVM_AGENT_CONFIG='{source}': {e}") from e
    if not isinstance(data, dict):
        raise RuntimeError(f"SQLVM_AGENT_CONFIG='{source}' must contain a JSON object")
    return data


class ConfigManager:
    """Manager for agent configuration."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.environ.get("SQLVM_AGENT_CONFIG", DEFAULT_AGENT_CONFIG))

    def load_agent_config(self) -> Dict[str, Any]:
        """Load agent config over built-in defaults.
        Precedence: env (SQLVM_AGENT_HOST, SQLVM_AGENT_PORT) > config file > defaults.
        A missing file leaves the defaults in place; a malformed one is fatal
        and the server will NOT start.
        """
        cfg = copy.deepcopy(AGENT_DEFAULTS)
        if self.path.exists():
            file_cfg = _decode(self.path.read_bytes(), str(self.path))
            deep_update(cfg, file_cfg)
            logger.info("Loaded agent config from %s", self.path)
        else:
            logger.warning("Agent config %s not found; using defaults", self.path)
        host = os.environ.get("SQLVM_AGENT_HOST")
        if host:
            cfg["bind_host"] = host
        port = os.environ.get("SQLVM_AGENT_PORT")
        if port:
            cfg["bind_port"] = port
        try:
            cfg["bind_port"] = int(cfg["bind_port"])
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"Invalid bind_port '{cfg['bind_port']}'") from e
        if not isinstance(cfg.get("defaults"), dict):
            cfg["defaults"] = copy.deepcopy(AGENT_DEFAULTS["defaults"])
        return cfg
