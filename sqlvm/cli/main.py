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

"""
SQL Server VM deployment controller (CLI)

    sqlvm deploy --service-name svc1 --location "West US" \\
        --computer-name backend --instance-size Medium

The administrator password is prompted for interactively. Results are
printed as JSON; failures print ``{"error": ...}`` and exit 1.

Configuration is read from ``SQLVM_CONFIG`` (default ``~/.sqlvm/config.json``).
"""
from pathlib import Path
from typing import List, Optional

import typer

from .commands import CLICommands
from ..models import InstanceSize

app = typer.Typer(help="Provision a SQL Server VM with striped data volumes.")

ConfigOption = typer.Option(None, "--config", help="Path to the controller JSON config")


@app.command()
def deploy(
    service_name: str = typer.Option(..., help="Service (resource group) name"),
    location: str = typer.Option(..., help="Azure region, e.g. 'West US'"),
    computer_name: str = typer.Option(..., help="VM host name"),
    instance_size: InstanceSize = typer.Option(InstanceSize.MEDIUM, case_sensitive=False),
    admin_username: Optional[str] = typer.Option(None, help="Administrator user (default from config)"),
    admin_password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    config: Optional[Path] = ConfigOption,
):
    """Provision the VM, stripe its data disks and create the database."""
    CLICommands(config).deploy(service_name, location, computer_name, instance_size, admin_username, admin_password)


@app.command()
def plan(
    disk_ids: Optional[List[int]] = typer.Argument(None, help="Disk ids in enumeration order"),
    config: Optional[Path] = ConfigOption,
):
    """Validate the pool layout without touching any remote resource."""
    CLICommands(config).plan(disk_ids or [])


@app.command("render-ddl")
def render_ddl(
    drive_letters: List[str] = typer.Argument(..., help="Drive letters of the striped volumes, in order"),
    config: Optional[Path] = ConfigOption,
):
    """Print the CREATE DATABASE statement for the given volumes."""
    CLICommands(config).render_ddl(drive_letters)


@app.command()
def trust(
    service_name: str = typer.Option(...),
    computer_name: str = typer.Option(...),
    config: Optional[Path] = ConfigOption,
):
    """Trust the VM's management certificate locally."""
    CLICommands(config).trust(service_name, computer_name)


@app.command("run-procedure")
def run_procedure(
    operation: str = typer.Argument(..., help="Agent operation, e.g. provision-storage"),
    service_name: str = typer.Option(...),
    computer_name: str = typer.Option(...),
    parameters: Optional[str] = typer.Option(None, help="Operation parameters as a JSON object"),
    admin_username: Optional[str] = typer.Option(None),
    admin_password: str = typer.Option(..., prompt=True, hide_input=True),
    config: Optional[Path] = ConfigOption,
):
    """Run one agent procedure on an existing VM."""
    CLICommands(config).run_procedure(
        service_name, computer_name, operation, parameters, admin_username, admin_password
    )


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
