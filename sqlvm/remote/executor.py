#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Remote executor (HTTP/REST client for the storage agent).

This module talks to the storage agent running on the new VM over HTTPS
using RESTful endpoints:

- GET  /healthz          agent liveness
- GET  /v1/disks         poolable physical disks
- POST /v1/procedures    run one typed procedure ``{operation, parameters}``

Requests authenticate with HTTP Basic using the provisioning credential and
verify the agent against the local trust bundle. A procedure call blocks
until the agent reports completion or failure.
"""
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests
from requests.auth import HTTPBasicAuth

from ..config import LoggingConfig
from ..errors import RemoteExecutionError
from ..models import ProcedureRequest


class AgentEndpoint(object):
    """HTTPS agent endpoint and auth context."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: Optional[float] = 3600,
        verify: Union[bool, str, Path] = True,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = HTTPBasicAuth(username, password)
        self.timeout = timeout
        self.verify = str(verify) if isinstance(verify, Path) else verify


class RemoteExecutor:
    """Dispatch procedure requests to the storage agent."""

    def __init__(self, endpoint: AgentEndpoint, log_cfg: LoggingConfig, session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.logger = log_cfg.get_logger("remote")
        self.session = session or requests.Session()

    def _req(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None):
        """Perform an HTTP request and map transport errors."""
        url = f"{self.endpoint.base_url}{path}"
        try:
            return self.session.request(
                method,
                url,
                json=json_body,
                headers={"Accept": "application/json"},
                timeout=timeout if timeout is not None else self.endpoint.timeout,
                auth=self.endpoint.auth,
                verify=self.endpoint.verify,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteExecutionError(f"HTTP error contacting agent at {url}: {e}") from e

    @staticmethod
    def _json_or_fail(resp) -> Dict[str, Any]:
        """Return parsed JSON or raise with the agent's error message."""
        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text[:500]}
        if resp.status_code >= 400:
            msg = data.get("error") or data.get("raw") if isinstance(data, dict) else str(data)
            raise RemoteExecutionError(f"Agent error ({resp.status_code}): {msg}")
        if not isinstance(data, dict):
            raise RemoteExecutionError("Agent returned non-JSON or unexpected payload")
        return data

    def health(self) -> Dict[str, Any]:
        return self._json_or_fail(self._req("GET", "/healthz", timeout=30))

    def wait_until_ready(self, timeout: float = 900, interval: float = 15) -> Dict[str, Any]:
        """Poll /healthz until the agent answers or the deadline passes."""
        deadline = time.monotonic() + timeout
        last_error: Optional[Exception] = None
        while True:
            try:
                data = self.health()
                self.logger.info("Agent at %s is ready", self.endpoint.base_url)
                return data
            except RemoteExecutionError as e:
                last_error = e
                self.logger.debug("Agent not ready yet: %s", e)
            if time.monotonic() + interval > deadline:
                break
            time.sleep(interval)
        raise RemoteExecutionError(f"Agent at {self.endpoint.base_url} not ready after {timeout}s: {last_error}")

    def list_disks(self) -> Dict[str, Any]:
        return self._json_or_fail(self._req("GET", "/v1/disks"))

    def run(self, request: ProcedureRequest) -> Dict[str, Any]:
        """POST /v1/procedures and block until the agent returns."""
        self.logger.info("Running remote procedure %s %s", request.operation, request.parameters)
        data = self._json_or_fail(self._req("POST", "/v1/procedures", json_body=request.model_dump()))
        if data.get("status") != "success":
            raise RemoteExecutionError(f"Procedure {request.operation} failed: {data.get('error') or data}")
        self.logger.info("Remote procedure %s completed", request.operation)
        return data
