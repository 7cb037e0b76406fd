import logging
from typing import List, Optional

import psutil

from ..powershell import PowerShellError, ps_array, ps_quote, run_powershell, run_powershell_json
from .base import PhysicalDisk, StorageBackend, StorageError

logger = logging.getLogger("sqlvm-agent")


class StorageSpacesBackend(StorageBackend):
    """Windows Storage Spaces through the Storage PowerShell module."""

    def __init__(self, powershell: Optional[str] = None, filesystem: str = "NTFS"):
        self.powershell = powershell
        self.filesystem = filesystem

    def list_poolable_disks(self) -> List[PhysicalDisk]:
        try:
            rows = run_powershell_json(
                "Get-PhysicalDisk -CanPool $true | Select-Object DeviceId, FriendlyName, Size",
                self.powershell,
            )
        except PowerShellError as e:
            raise StorageError(f"Failed to enumerate poolable disks: {e}") from e
        disks = []
        for row in rows:
            try:
                disk = PhysicalDisk(
                    device_id=int(row.get("DeviceId")),
                    friendly_name=str(row.get("FriendlyName") or ""),
                    size=int(row.get("Size") or 0),
                )
            except (AttributeError, TypeError, ValueError) as e:
                raise StorageError(f"Unexpected physical disk entry {row!r}") from e
            disks.append(disk)
        return disks

    def create_pool(self, name: str, disk_ids: List[int]) -> None:
        logger.info("Creating storage pool %s from disks %s", name, disk_ids)
        script = (
            f"$ids = {ps_array(disk_ids)}; "
            "$disks = @(Get-PhysicalDisk -CanPool $true | Where-Object { $ids -contains $_.DeviceId }); "
            f"if ($disks.Count -ne {len(disk_ids)}) {{ throw \"Expected {len(disk_ids)} poolable disks, found $($disks.Count)\" }}; "
            "$subsystem = Get-StorageSubSystem -FriendlyName '*Storage*' | Select-Object -First 1; "
            f"New-StoragePool -FriendlyName {ps_quote(name)} "
            "-StorageSubSystemUniqueId $subsystem.UniqueId -PhysicalDisks $disks | Out-Null"
        )
        try:
            run_powershell(script, self.powershell)
        except PowerShellError as e:
            raise StorageError(f"Failed to create storage pool {name}: {e}") from e

    def create_virtual_disk(self, pool: str, name: str, columns: int) -> None:
        logger.info("Creating virtual disk %s on %s (%d columns)", name, pool, columns)
        script = (
            f"New-VirtualDisk -StoragePoolFriendlyName {ps_quote(pool)} -FriendlyName {ps_quote(name)} "
            f"-ResiliencySettingName Simple -NumberOfDataCopies 1 -NumberOfColumns {int(columns)} "
            "-ProvisioningType Fixed -UseMaximumSize | Out-Null"
        )
        try:
            run_powershell(script, self.powershell)
        except PowerShellError as e:
            raise StorageError(f"Failed to create virtual disk {name} on {pool}: {e}") from e

    def format_virtual_disk(self, name: str, label: str) -> str:
        logger.info("Initializing and formatting virtual disk %s", name)
        script = (
            f"Get-VirtualDisk -FriendlyName {ps_quote(name)} | Get-Disk | "
            "Initialize-Disk -PartitionStyle GPT -PassThru | "
            "New-Partition -AssignDriveLetter -UseMaximumSize | "
            f"Format-Volume -FileSystem {self.filesystem} -NewFileSystemLabel {ps_quote(label)} -Confirm:$false | "
            "Select-Object @{n='DriveLetter';e={[string]$_.DriveLetter}}"
        )
        try:
            rows = run_powershell_json(script, self.powershell)
        except PowerShellError as e:
            raise StorageError(f"Failed to format virtual disk {name}: {e}") from e
        letter = (rows[0].get("DriveLetter") if rows else "") or ""
        if not letter.strip():
            raise StorageError(f"No drive letter assigned to virtual disk {name}")
        return letter.strip().upper()

    def is_drive_ready(self, letter: str) -> bool:
        mountpoint = f"{letter.upper()}:\\"
        return any(p.mountpoint.upper() == mountpoint for p in psutil.disk_partitions(all=False))
