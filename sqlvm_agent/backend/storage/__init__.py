"""
Storage backends for the SQL Server storage agent.
Windows Storage Spaces is the only concrete backend; the striping logic
works against the StorageBackend protocol so it can run on fakes.
"""
from .base import DriveNotReadyError, PhysicalDisk, StorageBackend, StorageError
from .spaces import StorageSpacesBackend
from .striping import StripedVolumeBuilder, virtual_disk_name

__all__ = [
    "DriveNotReadyError",
    "PhysicalDisk",
    "StorageBackend",
    "StorageError",
    "StorageSpacesBackend",
    "StripedVolumeBuilder",
    "virtual_disk_name",
]
