"""
Striped volume builder.

Groups the poolable disks into pools, requests one simple virtual disk per
pool in parallel, then formats each one and waits for its drive letter.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional

from sqlvm.models import Pool, StripedVolume
from sqlvm.planning import DEFAULT_POOL_PREFIX, assign_pools, plan_disk_pools

from .base import DriveNotReadyError, StorageBackend, StorageError

logger = logging.getLogger("sqlvm-agent")

DEFAULT_DRIVE_READY_TIMEOUT = 120.0
DEFAULT_DRIVE_POLL_INTERVAL = 2.0


def virtual_disk_name(pool_name: str) -> str:
    return f"{pool_name}VirtualDisk"


class StripedVolumeBuilder:
    """Build one striped volume per pool on top of a StorageBackend."""

    def __init__(
        self,
        backend: StorageBackend,
        drive_ready_timeout: float = DEFAULT_DRIVE_READY_TIMEOUT,
        poll_interval: float = DEFAULT_DRIVE_POLL_INTERVAL,
        log: Optional[logging.Logger] = None,
    ):
        self.backend = backend
        self.drive_ready_timeout = drive_ready_timeout
        self.poll_interval = poll_interval
        self.logger = log or logger

    def create_pools(self, pool_count: int, disks_per_pool: int, prefix: str = DEFAULT_POOL_PREFIX) -> List[Pool]:
        """Plan the pools over the currently poolable disks and create them in order."""
        plan = plan_disk_pools(pool_count * disks_per_pool, pool_count, disks_per_pool)
        disks = self.backend.list_poolable_disks()
        self.logger.info("Found %d poolable disk(s): %s", len(disks), [d.device_id for d in disks])
        pools = assign_pools(plan, [d.device_id for d in disks], prefix=prefix)
        for pool in pools:
            self.backend.create_pool(pool.name, pool.disk_indices)
        return pools

    def create_virtual_disks(self, pools: List[Pool], columns: int) -> List[StripedVolume]:
        """Request every virtual disk at once and wait for all of them.

        Failures are collected and the first one is raised only after every
        request has finished.
        """
        volumes = [StripedVolume(pool=p.name, virtual_disk=virtual_disk_name(p.name), columns=columns) for p in pools]
        if not volumes:
            return volumes
        with ThreadPoolExecutor(max_workers=len(volumes), thread_name_prefix="vdisk") as executor:
            futures = {
                executor.submit(self.backend.create_virtual_disk, v.pool, v.virtual_disk, v.columns): v
                for v in volumes
            }
            wait(futures)
        errors = []
        for future, volume in futures.items():
            exc = future.exception()
            if exc is not None:
                self.logger.error("Virtual disk %s on %s failed: %s", volume.virtual_disk, volume.pool, exc)
                errors.append((volume, exc))
        if errors:
            volume, exc = errors[0]
            raise StorageError(
                f"{len(errors)} of {len(volumes)} virtual disk request(s) failed; "
                f"first: {volume.virtual_disk} on {volume.pool}: {exc}"
            ) from exc
        return volumes

    def wait_for_drive(self, letter: str) -> None:
        deadline = time.monotonic() + self.drive_ready_timeout
        while not self.backend.is_drive_ready(letter):
            if time.monotonic() >= deadline:
                raise DriveNotReadyError(f"Drive {letter}: not mounted after {self.drive_ready_timeout}s")
            time.sleep(self.poll_interval)

    def format_volumes(self, volumes: List[StripedVolume]) -> List[StripedVolume]:
        for volume in volumes:
            volume.drive_letter = self.backend.format_virtual_disk(volume.virtual_disk, volume.pool)
            self.wait_for_drive(volume.drive_letter)
            self.logger.info("Volume %s mounted at %s:", volume.virtual_disk, volume.drive_letter)
        return volumes

    def build(self, pool_count: int, disks_per_pool: int, prefix: str = DEFAULT_POOL_PREFIX) -> List[StripedVolume]:
        """Pools, then parallel virtual disks, then sequential formatting."""
        pools = self.create_pools(pool_count, disks_per_pool, prefix)
        volumes = self.create_virtual_disks(pools, columns=disks_per_pool)
        return self.format_volumes(volumes)
