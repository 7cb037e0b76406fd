#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CLI commands module for the deployment controller.
This module contains the command implementations behind the ``sqlvm`` CLI.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ..config import ConfigManager, LoggingConfig
from ..errors import DeploymentError
from ..models import InstanceSize, ProcedureRequest, VMRequest
from ..orchestration import Deployment
from ..planning import assign_pools, plan_disk_pools
from ..provider import AzureProvider
from ..sql import build_create_database, render_create_database
from ..trust import TrustStore


def fail(msg: str) -> None:
    """Print an error JSON object and exit with code 1."""
    typer.echo(json.dumps({"error": msg}, ensure_ascii=False))
    raise typer.Exit(code=1)


def succeed(data: Dict[str, Any]) -> None:
    """Print a JSON object and exit with code 0."""
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))
    raise typer.Exit(code=0)


class CLICommands:
    """CLI commands handler."""

    def __init__(self, config_path: Optional[Path] = None):
        try:
            self.cfg = ConfigManager(str(config_path) if config_path else None).load_config()
        except DeploymentError as e:
            fail(str(e))
        self.log_cfg = LoggingConfig.from_cfg(self.cfg)
        self.log_cfg.apply()

    def _provider(self) -> AzureProvider:
        return AzureProvider(self.cfg, self.log_cfg)

    def _vm_request(
        self,
        service_name: str,
        location: str,
        computer_name: str,
        instance_size: InstanceSize,
        admin_username: Optional[str],
        admin_password: str,
    ) -> VMRequest:
        storage = self.cfg.get("storage", {})
        return VMRequest(
            service_name=service_name,
            location=location,
            computer_name=computer_name,
            instance_size=instance_size,
            admin_username=admin_username or self.cfg.get("azure", {}).get("admin_username", "sqladmin"),
            admin_password=admin_password,
            data_disk_count=int(storage.get("data_disk_count", 4)),
            data_disk_size_gb=int(storage.get("data_disk_size_gb", 10)),
        )

    def deploy(self, service_name, location, computer_name, instance_size, admin_username, admin_password):
        """Provision the VM, trust its certificate and run the storage procedure."""
        try:
            request = self._vm_request(
                service_name, location, computer_name, instance_size, admin_username, admin_password
            )
            result = Deployment(self.cfg, self._provider(), self.log_cfg).run(request)
        except DeploymentError as e:
            fail(str(e))
        succeed(result)

    def plan(self, disk_ids: List[int]):
        """Validate the configured pool layout and show which disks each pool would take."""
        storage = self.cfg.get("storage", {})
        try:
            plan = plan_disk_pools(
                int(storage.get("data_disk_count", 4)),
                int(storage.get("pool_count", 2)),
                int(storage.get("disks_per_pool", 2)),
            )
            ids = disk_ids or list(range(1, plan.total_disks + 1))
            pools = assign_pools(plan, ids, prefix=storage.get("pool_prefix", "Pool"))
        except DeploymentError as e:
            fail(str(e))
        succeed(
            {
                "status": "success",
                "plan": {
                    "total_disks": plan.total_disks,
                    "pool_count": plan.pool_count,
                    "disks_per_pool": plan.disks_per_pool,
                },
                "pools": [{"name": p.name, "disks": p.disk_indices} for p in pools],
            }
        )

    def render_ddl(self, drive_letters: List[str]):
        """Print the CREATE DATABASE statement for the given volumes."""
        database = self.cfg.get("database", {})
        try:
            statement = build_create_database(
                database.get("name", "Testdata"),
                drive_letters,
                file_prefix=database.get("file_prefix", "Testdata"),
            )
        except DeploymentError as e:
            fail(str(e))
        typer.echo(render_create_database(statement))

    def trust(self, service_name: str, computer_name: str):
        """Import the VM's management certificate into the local trust store."""
        try:
            deployment = Deployment(self.cfg, self._provider(), self.log_cfg)
            imported = deployment.trust.ensure_trusted(service_name, computer_name)
        except DeploymentError as e:
            fail(str(e))
        store: TrustStore = deployment.trust.store
        succeed({"status": "success", "imported": imported, "bundle": str(store.bundle_path)})

    def run_procedure(self, service_name, computer_name, operation, parameters, admin_username, admin_password):
        """Send one procedure to the agent of an existing VM."""
        try:
            params = json.loads(parameters) if parameters else {}
        except json.JSONDecodeError as e:
            fail(f"Invalid --parameters JSON: {e}")
        if not isinstance(params, dict):
            fail("--parameters must be a JSON object")
        try:
            deployment = Deployment(self.cfg, self._provider(), self.log_cfg)
            request = self._vm_request(
                service_name, "", computer_name, InstanceSize.MEDIUM, admin_username, admin_password
            )
            executor = deployment.connect(request)
            result = executor.run(ProcedureRequest(operation=operation, parameters=params))
        except DeploymentError as e:
            fail(str(e))
        succeed(result)
