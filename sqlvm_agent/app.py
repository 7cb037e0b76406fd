#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from sqlvm import __version__
from sqlvm.config import LoggingConfig
from sqlvm.models import ProcedureRequest

from .api import APIHandlers, register_routes
from .config import ConfigManager
from .orchestration import ProcedureRunner
from .tls import TLSConfigError, install_pfx, uvicorn_tls_options
from .utils.auth import AuthConfigError, build_auth_dependency

AGENT_LOGGER = "sqlvm-agent"
logger = logging.getLogger(AGENT_LOGGER)


def _setup_logging(cfg: Dict[str, Any]) -> None:
    LoggingConfig.from_cfg(cfg).apply(AGENT_LOGGER)


def _configure_auth_dependency(auth_cfg: Any):
    """Configure optional authentication dependency."""
    try:
        return build_auth_dependency(auth_cfg)
    except AuthConfigError as exc:
        raise RuntimeError(f"Authentication configuration error: {exc}") from exc


def create_app(agent_cfg: Dict[str, Any], handlers: Optional[APIHandlers] = None) -> FastAPI:
    """Build the FastAPI application for a loaded agent config."""
    app = FastAPI(title="SQL Storage Agent", version=__version__)
    auth_dependency = _configure_auth_dependency(agent_cfg.get("auth", {}))

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Log incoming requests immediately upon receipt."""
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error("Validation error: %s", exc)
        return JSONResponse(status_code=422, content={"error": "Validation error", "detail": exc.errors()})

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.error("HTTP error: %s", exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    register_routes(app, agent_cfg.get("defaults", {}), auth_dependency, handlers)
    return app


# Local CLI (SQLVM_AGENT_MODE=cli), runs procedures without the HTTP layer
cli = typer.Typer()


def _local_runner() -> ProcedureRunner:
    cfg = ConfigManager().load_agent_config()
    _setup_logging(cfg)
    return ProcedureRunner(cfg.get("defaults", {}))


@cli.command("list-disks")
def list_disks():
    """Print the poolable physical disks."""
    runner = _local_runner()
    disks = runner.backend.list_poolable_disks()
    typer.echo(json.dumps([d.__dict__ for d in disks], indent=2))


@cli.command("install-tls")
def install_tls(
    pfx: str,
    password: str = typer.Option("", envvar="SQLVM_AGENT_PFX_PASSWORD", help="PFX password"),
):
    """Write the PFX's certificate and key to the configured security.tls paths."""
    cfg = ConfigManager().load_agent_config()
    _setup_logging(cfg)
    try:
        paths = install_pfx(pfx, password, cfg.get("security"))
    except TLSConfigError as e:
        typer.echo(json.dumps({"error": str(e)}))
        raise typer.Exit(code=1)
    typer.echo(json.dumps(paths, indent=2))


@cli.command("run-procedure")
def run_procedure(operation: str, parameters: Optional[str] = typer.Option(None, help="JSON object")):
    """Run one procedure locally."""
    try:
        params = json.loads(parameters) if parameters else {}
        result = _local_runner().run(ProcedureRequest(operation=operation, parameters=params))
    except Exception as e:
        typer.echo(json.dumps({"error": str(e)}))
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result, indent=2))


def main():
    """Main entry point."""
    mode = os.environ.get("SQLVM_AGENT_MODE", "api").lower()
    if mode == "cli":
        cli()
        return
    cfg = ConfigManager().load_agent_config()
    _setup_logging(cfg)
    tls_options = uvicorn_tls_options(cfg.get("security"))
    app = create_app(cfg)
    logger.info("Starting SQL storage agent on %s:%s", cfg["bind_host"], cfg["bind_port"])
    uvicorn.run(app, host=cfg["bind_host"], port=cfg["bind_port"], reload=False, **tls_options)


if __name__ == "__main__":
    main()
