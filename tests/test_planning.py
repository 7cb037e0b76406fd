import pytest

from sqlvm.errors import ConfigurationError, InsufficientDisksError
from sqlvm.planning import assign_pools, plan_disk_pools


def test_default_layout_is_two_pools_of_two():
    plan = plan_disk_pools(4, 2, 2)
    assert (plan.total_disks, plan.pool_count, plan.disks_per_pool) == (4, 2, 2)


@pytest.mark.parametrize("total,pools,per_pool", [(4, 3, 2), (5, 2, 2), (3, 1, 2)])
def test_mismatched_arithmetic_is_rejected(total, pools, per_pool):
    with pytest.raises(ConfigurationError):
        plan_disk_pools(total, pools, per_pool)


@pytest.mark.parametrize("total,pools,per_pool", [(0, 0, 2), (4, -2, -2), (4, True, 4)])
def test_non_positive_values_are_rejected(total, pools, per_pool):
    with pytest.raises(ConfigurationError):
        plan_disk_pools(total, pools, per_pool)


def test_assign_pools_slices_contiguously_in_enumeration_order():
    plan = plan_disk_pools(4, 2, 2)
    pools = assign_pools(plan, [7, 3, 9, 5])
    assert [p.name for p in pools] == ["Pool1", "Pool2"]
    assert [p.disk_indices for p in pools] == [[7, 3], [9, 5]]


def test_assign_pools_covers_every_disk_exactly_once():
    plan = plan_disk_pools(6, 3, 2)
    pools = assign_pools(plan, list(range(1, 7)))
    flattened = [d for p in pools for d in p.disk_indices]
    assert sorted(flattened) == list(range(1, 7))
    assert len(set(flattened)) == 6


def test_assign_pools_leaves_extra_disks_untouched():
    plan = plan_disk_pools(4, 2, 2)
    pools = assign_pools(plan, [1, 2, 3, 4, 5], prefix="Data")
    assert [p.name for p in pools] == ["Data1", "Data2"]
    assert 5 not in [d for p in pools for d in p.disk_indices]


def test_insufficient_disks_builds_no_pools():
    plan = plan_disk_pools(4, 2, 2)
    with pytest.raises(InsufficientDisksError, match="4 poolable disk"):
        assign_pools(plan, [1, 2, 3])


@pytest.mark.parametrize("disk_ids", [[1, 1, 2, 2], [1, 2, 3, 1], [1, 2, 3, 4, 4]])
def test_repeated_disk_ids_are_rejected(disk_ids):
    with pytest.raises(ConfigurationError, match="more than once"):
        assign_pools(plan_disk_pools(4, 2, 2), disk_ids)
