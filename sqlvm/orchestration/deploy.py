#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Deployment pipeline for the SQL Server VM.
This module runs plan -> precondition -> provision -> trust -> remote procedure in order.
"""
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..config import LoggingConfig
from ..errors import PreconditionError
from ..models import ProcedureRequest, VMRequest
from ..planning import plan_disk_pools
from ..provider.base import CloudProvider
from ..remote import AgentEndpoint, RemoteExecutor
from ..trust import TrustBootstrapper, TrustStore

PROVISION_STORAGE = "provision-storage"

ExecutorFactory = Callable[[AgentEndpoint, LoggingConfig], RemoteExecutor]


class Deployment:
    """One-shot deployment of a SQL Server VM with striped data volumes."""

    def __init__(
        self,
        cfg: Dict[str, Any],
        provider: CloudProvider,
        log_cfg: LoggingConfig,
        executor_factory: Optional[ExecutorFactory] = None,
    ):
        self.cfg = cfg
        self.provider = provider
        self.log_cfg = log_cfg
        self.logger = log_cfg.get_logger("deploy")
        self.executor_factory = executor_factory or RemoteExecutor
        remote_cfg = cfg.get("remote", {})
        store = TrustStore(Path(remote_cfg.get("trust_dir", "~/.sqlvm/trust")), log_cfg.get_logger("trust"))
        self.trust = TrustBootstrapper(provider, store, log_cfg)

    def procedure_request(self) -> ProcedureRequest:
        storage = self.cfg.get("storage", {})
        database = self.cfg.get("database", {})
        return ProcedureRequest(
            operation=PROVISION_STORAGE,
            parameters={
                "pool_count": int(storage.get("pool_count", 2)),
                "disks_per_pool": int(storage.get("disks_per_pool", 2)),
                "pool_prefix": storage.get("pool_prefix", "Pool"),
                "database": database.get("name", "Testdata"),
                "file_prefix": database.get("file_prefix", "Testdata"),
            },
        )

    def connect(self, request: VMRequest) -> RemoteExecutor:
        """Build an executor for the VM's management endpoint using the trust bundle."""
        remote_cfg = self.cfg.get("remote", {})
        base_url = self.provider.management_endpoint(request.service_name, request.computer_name)
        endpoint = AgentEndpoint(
            base_url,
            request.admin_username,
            request.admin_password,
            timeout=remote_cfg.get("timeout", 3600),
            verify=self.trust.bundle_path,
        )
        return self.executor_factory(endpoint, self.log_cfg)

    def run(self, request: VMRequest) -> Dict[str, Any]:
        storage = self.cfg.get("storage", {})
        remote_cfg = self.cfg.get("remote", {})
        plan = plan_disk_pools(
            request.data_disk_count,
            int(storage.get("pool_count", 2)),
            int(storage.get("disks_per_pool", 2)),
        )
        self.logger.info(
            "Plan: %d disk(s) -> %d pool(s) of %d", plan.total_disks, plan.pool_count, plan.disks_per_pool
        )

        if self.provider.vm_exists(request.service_name, request.computer_name):
            raise PreconditionError(
                f"VM '{request.computer_name}' already exists in service '{request.service_name}'"
            )

        self.logger.info("Provisioning %s", request.public())
        vm = self.provider.create_vm(request)

        imported = self.trust.ensure_trusted(request.service_name, request.computer_name)

        executor = self.connect(request)
        executor.wait_until_ready(
            timeout=float(remote_cfg.get("ready_timeout", 900)),
            interval=float(remote_cfg.get("ready_interval", 15)),
        )
        result = executor.run(self.procedure_request())

        self.logger.info("Deployment of %s complete", request.computer_name)
        return {
            "status": "success",
            "request": request.public(),
            "vm": vm,
            "certificate_imported": imported,
            "procedure": result,
        }
