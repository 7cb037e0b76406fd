from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, runtime_checkable

from sqlvm.errors import StorageError


@dataclass
class PhysicalDisk:
    """A raw disk that can join a storage pool."""

    device_id: int
    friendly_name: str
    size: int


class DriveNotReadyError(StorageError, TimeoutError):
    """A formatted volume's drive letter did not appear before the deadline."""


@runtime_checkable
class StorageBackend(Protocol):
    """Minimal contract for disk striping backends.
    Semantics:
      - list_poolable_disks(): unformatted disks in enumeration order.
      - create_pool(): group the given disks into a named pool.
      - create_virtual_disk(): simple (1 copy) virtual disk striped over `columns` disks, maximum size.
      - format_virtual_disk(): initialize, partition (auto drive letter, full size), format; return the letter.
      - is_drive_ready(): True once the drive letter is mounted.
    Notes:
      - Raise StorageError for failures; the caller treats them as fatal.
    """

    def list_poolable_disks(self) -> List[PhysicalDisk]:
        ...

    def create_pool(self, name: str, disk_ids: List[int]) -> None:
        ...

    def create_virtual_disk(self, pool: str, name: str, columns: int) -> None:
        ...

    def format_virtual_disk(self, name: str, label: str) -> str:
        ...

    def is_drive_ready(self, letter: str) -> bool:
        ...
