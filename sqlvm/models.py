#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data models for the SQL Server VM deployment.
This module contains the data classes shared by the controller and the storage agent.
"""
import dataclasses
import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class InstanceSize(str, enum.Enum):
    """Enumerated VM sizes accepted by the provisioner."""

    EXTRA_SMALL = "ExtraSmall"
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"
    EXTRA_LARGE = "ExtraLarge"
    A5 = "A5"
    A6 = "A6"
    A7 = "A7"


@dataclasses.dataclass
class DiskPoolPlan:
    """Validated split of the data disks into equally sized pools."""

    total_disks: int
    disks_per_pool: int
    pool_count: int


@dataclasses.dataclass
class Pool:
    """A named slice of physical disks, identified by their device ids."""

    name: str
    disk_indices: List[int]


@dataclasses.dataclass
class StripedVolume:
    """One simple (non-redundant) virtual disk striped across a pool."""

    pool: str
    virtual_disk: str
    columns: int
    drive_letter: Optional[str] = None


@dataclasses.dataclass
class DatabaseFileSpec:
    """One data or log file of the generated database."""

    name: str
    path: str
    size_mb: int = 100
    max_size_mb: int = 200
    growth_mb: int = 20


@dataclasses.dataclass
class VMRequest:
    """Operator input for a single deployment."""

    service_name: str
    location: str
    computer_name: str
    instance_size: InstanceSize
    admin_username: str
    admin_password: str
    data_disk_count: int = 4
    data_disk_size_gb: int = 10

    def public(self) -> Dict[str, Any]:
        """Request fields without the credential, for logging and summaries."""
        return {
            "service_name": self.service_name,
            "location": self.location,
            "computer_name": self.computer_name,
            "instance_size": self.instance_size.value,
            "admin_username": self.admin_username,
            "data_disk_count": self.data_disk_count,
            "data_disk_size_gb": self.data_disk_size_gb,
        }


class ProcedureRequest(BaseModel):
    """Typed unit of remote work dispatched to the storage agent."""

    operation: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
