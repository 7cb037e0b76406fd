#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""API routes module for the storage agent."""
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI

from sqlvm.models import ProcedureRequest

from .handlers import APIHandlers


def register_routes(
    app: FastAPI,
    agent_defaults: Dict[str, Any],
    auth_dependency: Optional[Any] = None,
    handlers: Optional[APIHandlers] = None,
) -> APIHandlers:
    """Register all API routes with the FastAPI application."""
    handlers = handlers or APIHandlers(agent_defaults)
    deps = [Depends(auth_dependency)] if auth_dependency else []
    protected = {"dependencies": deps} if deps else {}

    @app.get("/healthz")
    def healthz():
        return handlers.healthz()

    @app.get("/v1/version", **protected)
    def v1_version():
        return handlers.v1_version()

    @app.get("/v1/disks", **protected)
    def v1_list_disks():
        return handlers.v1_list_disks()

    @app.post("/v1/procedures", **protected)
    def v1_run_procedure(req: ProcedureRequest):
        return handlers.v1_run_procedure(req)

    return handlers
