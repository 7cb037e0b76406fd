"""Disk pool planning: validate the pool arithmetic and slice disks into pools."""
from typing import List, Sequence

from .errors import ConfigurationError, InsufficientDisksError
from .models import DiskPoolPlan, Pool

DEFAULT_POOL_PREFIX = "Pool"


def _require_positive(label: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{label} must be a positive integer, got {value!r}")


def plan_disk_pools(total_disks: int, pool_count: int, disks_per_pool: int) -> DiskPoolPlan:
    """Validate ``total_disks == pool_count * disks_per_pool`` and return the plan.

    Raises ConfigurationError on any mismatch; callers run this before
    touching the cloud provider or the target machine.
    """
    _require_positive("total_disks", total_disks)
    _require_positive("pool_count", pool_count)
    _require_positive("disks_per_pool", disks_per_pool)
    if total_disks != pool_count * disks_per_pool:
        raise ConfigurationError(
            f"Disk count {total_disks} does not match {pool_count} pool(s) "
            f"x {disks_per_pool} disk(s) per pool"
        )
    return DiskPoolPlan(total_disks=total_disks, disks_per_pool=disks_per_pool, pool_count=pool_count)


def assign_pools(plan: DiskPoolPlan, disk_ids: Sequence[int], prefix: str = DEFAULT_POOL_PREFIX) -> List[Pool]:
    """Slice ``disk_ids`` contiguously into ``plan.pool_count`` pools.

    The order of ``disk_ids`` is taken as-is from the disk enumeration.
    Extra disks beyond ``plan.total_disks`` are left untouched. A disk id
    listed twice is a ConfigurationError: no disk may back two pools.
    """
    if len(disk_ids) < plan.total_disks:
        raise InsufficientDisksError(
            f"{plan.total_disks} poolable disk(s) required, only {len(disk_ids)} available"
        )
    ids = [int(d) for d in disk_ids]
    repeated = sorted({d for d in ids if ids.count(d) > 1})
    if repeated:
        raise ConfigurationError(f"Disk id(s) {repeated} listed more than once")
    pools: List[Pool] = []
    for index in range(plan.pool_count):
        start = index * plan.disks_per_pool
        pools.append(
            Pool(
                name=f"{prefix}{index + 1}",
                disk_indices=ids[start : start + plan.disks_per_pool],
            )
        )
    return pools
