#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Procedure runner for the storage agent.
This module maps typed procedure requests to storage, database and firewall operations.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlvm.models import ProcedureRequest, StripedVolume
from sqlvm.planning import DEFAULT_POOL_PREFIX
from sqlvm.sql import build_create_database, render_create_database
from sqlvm.sql.ddl import DEFAULT_DATABASE, DEFAULT_FILE_PREFIX

from ..backend.database import execute_sql
from ..backend.firewall import DEFAULT_RULE_NAME, DEFAULT_SQL_PORT, open_inbound_tcp
from ..backend.storage import StorageBackend, StorageSpacesBackend, StripedVolumeBuilder
from ..backend.storage.striping import DEFAULT_DRIVE_POLL_INTERVAL, DEFAULT_DRIVE_READY_TIMEOUT
from ..utils.validation import require_positive_int, validate_name

logger = logging.getLogger("sqlvm-agent")

PROVISION_STORAGE = "provision-storage"
CREATE_STRIPED_VOLUMES = "create-striped-volumes"
CREATE_DATABASE = "create-database"
OPEN_FIREWALL = "open-firewall"


def _volume_dict(volume: StripedVolume) -> Dict[str, Any]:
    return {
        "pool": volume.pool,
        "virtual_disk": volume.virtual_disk,
        "columns": volume.columns,
        "drive_letter": volume.drive_letter,
    }


class ProcedureRunner:
    """Run one procedure synchronously and return a JSON-ready result."""

    def __init__(
        self,
        agent_defaults: Dict[str, Any],
        backend: Optional[StorageBackend] = None,
        sql_executor: Optional[Callable[..., str]] = None,
        firewall: Optional[Callable[..., bool]] = None,
    ):
        self.agent_defaults = agent_defaults or {}
        self.backend = backend or StorageSpacesBackend(powershell=self.agent_defaults.get("powershell"))
        self.sql_executor = sql_executor or execute_sql
        self.firewall = firewall or open_inbound_tcp
        self.operations: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            PROVISION_STORAGE: self.provision_storage,
            CREATE_STRIPED_VOLUMES: self.create_striped_volumes,
            CREATE_DATABASE: self.create_database,
            OPEN_FIREWALL: self.open_firewall,
        }

    def builder(self) -> StripedVolumeBuilder:
        return StripedVolumeBuilder(
            self.backend,
            drive_ready_timeout=float(self.agent_defaults.get("drive_ready_timeout", DEFAULT_DRIVE_READY_TIMEOUT)),
            poll_interval=float(self.agent_defaults.get("drive_poll_interval", DEFAULT_DRIVE_POLL_INTERVAL)),
        )

    def run(self, request: ProcedureRequest) -> Dict[str, Any]:
        handler = self.operations.get(request.operation)
        if handler is None:
            raise ValueError(
                f"Unknown operation '{request.operation}'. Supported: {', '.join(sorted(self.operations))}"
            )
        logger.info("Running procedure %s", request.operation)
        result = handler(request.parameters or {})
        logger.info("Procedure %s completed", request.operation)
        return {"status": "success", "operation": request.operation, **result}

    def create_striped_volumes(self, params: Dict[str, Any]) -> Dict[str, Any]:
        pool_count = require_positive_int("pool_count", params.get("pool_count"))
        disks_per_pool = require_positive_int("disks_per_pool", params.get("disks_per_pool"))
        prefix = params.get("pool_prefix") or DEFAULT_POOL_PREFIX
        validate_name("pool prefix", prefix)
        volumes = self.builder().build(pool_count, disks_per_pool, prefix)
        return {"volumes": [_volume_dict(v) for v in volumes]}

    def create_database(self, params: Dict[str, Any]) -> Dict[str, Any]:
        drive_letters = params.get("drive_letters")
        if not isinstance(drive_letters, list):
            raise ValueError("drive_letters must be a list of drive letters")
        statement = build_create_database(
            params.get("database") or DEFAULT_DATABASE,
            drive_letters,
            file_prefix=params.get("file_prefix") or DEFAULT_FILE_PREFIX,
            directory=params.get("directory") or "",
        )
        ddl = render_create_database(statement)
        self.sql_executor(ddl, self.agent_defaults.get("sqlcmd"), self.agent_defaults.get("sql_server"))
        return {
            "database": statement.database,
            "files": [f.path for f in statement.data_files + statement.log_files],
        }

    def open_firewall(self, params: Dict[str, Any]) -> Dict[str, Any]:
        port = require_positive_int("port", params.get("port", self.agent_defaults.get("sql_port", DEFAULT_SQL_PORT)))
        rule_name = params.get("rule_name") or self.agent_defaults.get("firewall_rule_name") or DEFAULT_RULE_NAME
        created = self.firewall(port, rule_name, self.agent_defaults.get("powershell"))
        return {"firewall": {"port": port, "rule_name": rule_name, "created": created}}

    def provision_storage(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Striped volumes, then the database across them, then the SQL port."""
        volumes = self.create_striped_volumes(params)["volumes"]
        letters: List[str] = [v["drive_letter"] for v in volumes]
        database = self.create_database({**params, "drive_letters": letters})
        firewall = self.open_firewall({})
        return {"volumes": volumes, **database, **firewall}
