#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
API handlers module for the storage agent.
This module contains the endpoint handlers for disk listing and procedures.
"""
import logging
import platform
import socket
from typing import Any, Dict, Optional

from fastapi import HTTPException

from sqlvm import __version__
from sqlvm.models import ProcedureRequest

from ..backend.storage import StorageBackend, StorageError
from ..orchestration import ProcedureRunner

logger = logging.getLogger("sqlvm-agent")


class APIHandlers:

    def __init__(self, agent_defaults: Dict[str, Any], runner: Optional[ProcedureRunner] = None):
        self.agent_defaults = agent_defaults
        self.runner = runner or ProcedureRunner(agent_defaults)

    @property
    def backend(self) -> StorageBackend:
        return self.runner.backend

    def healthz(self) -> Dict[str, Any]:
        """Health check endpoint."""
        return {"status": "healthy", "message": "SQL storage agent is running", "host": socket.gethostname()}

    def v1_version(self) -> Dict[str, Any]:
        return {"version": __version__, "name": "SQL storage agent", "platform": platform.platform()}

    def v1_list_disks(self) -> Dict[str, Any]:
        """List the physical disks that can still join a pool."""
        try:
            disks = self.backend.list_poolable_disks()
        except StorageError as e:
            logger.exception("Failed to list disks: %s", e)
            raise HTTPException(status_code=500, detail=f"Failed to list disks: {e}")
        return {
            "status": "success",
            "count": len(disks),
            "disks": [{"device_id": d.device_id, "friendly_name": d.friendly_name, "size": d.size} for d in disks],
        }

    def v1_run_procedure(self, req: ProcedureRequest) -> Dict[str, Any]:
        """Run one procedure to completion; failures are fatal and nothing is rolled back."""
        try:
            return self.runner.run(req)
        except Exception as e:
            logger.exception("Procedure %s failed: %s", req.operation, e)
            status_code = 400 if isinstance(e, ValueError) else 500
            detail = str(e) if status_code == 400 else f"Procedure {req.operation} failed: {e}"
            raise HTTPException(status_code=status_code, detail=detail)
