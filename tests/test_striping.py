import time

import pytest

from sqlvm.errors import InsufficientDisksError
from sqlvm_agent.backend.storage import DriveNotReadyError, StorageError, StripedVolumeBuilder


def test_build_two_pools_of_two(fake_backend):
    volumes = StripedVolumeBuilder(fake_backend, drive_ready_timeout=1, poll_interval=0).build(2, 2)

    assert fake_backend.pools == {"Pool1": [1, 2], "Pool2": [3, 4]}
    assert sorted(fake_backend.virtual_disks) == [("Pool1", "Pool1VirtualDisk", 2), ("Pool2", "Pool2VirtualDisk", 2)]
    assert [(v.pool, v.drive_letter) for v in volumes] == [("Pool1", "F"), ("Pool2", "G")]
    assert all(v.columns == 2 for v in volumes)


def test_pools_are_created_before_any_virtual_disk(fake_backend):
    StripedVolumeBuilder(fake_backend, poll_interval=0).build(2, 2)
    first_vdisk = next(i for i, c in enumerate(fake_backend.calls) if c.startswith("vdisk:"))
    last_pool = max(i for i, c in enumerate(fake_backend.calls) if c.startswith("pool:"))
    first_format = next(i for i, c in enumerate(fake_backend.calls) if c.startswith("format:"))
    last_vdisk = max(i for i, c in enumerate(fake_backend.calls) if c.startswith("vdisk:"))
    assert last_pool < first_vdisk
    assert last_vdisk < first_format


def test_failed_virtual_disk_waits_for_the_others_then_aborts(fake_backend):
    original = fake_backend.create_virtual_disk

    def slow_create(pool, name, columns):
        if pool == "Pool2":
            time.sleep(0.05)
        return original(pool, name, columns)

    fake_backend.create_virtual_disk = slow_create
    fake_backend.fail_virtual_disk = "Pool1"

    with pytest.raises(StorageError, match="Pool1VirtualDisk"):
        StripedVolumeBuilder(fake_backend, poll_interval=0).build(2, 2)

    # the slow request still ran to completion before the error surfaced
    assert fake_backend.virtual_disks == [("Pool2", "Pool2VirtualDisk", 2)]
    assert fake_backend.formatted == []


def test_insufficient_disks_builds_nothing(fake_backend_cls):
    backend = fake_backend_cls(disk_ids=(1, 2, 3))
    with pytest.raises(InsufficientDisksError):
        StripedVolumeBuilder(backend).build(2, 2)
    assert backend.pools == {}


def test_drive_readiness_is_polled(fake_backend_cls):
    backend = fake_backend_cls(ready_after=3)
    StripedVolumeBuilder(backend, drive_ready_timeout=5, poll_interval=0).build(2, 2)
    assert backend.ready_checks == {"F": 4, "G": 4}


def test_drive_never_ready_times_out(fake_backend_cls):
    backend = fake_backend_cls(ready_after=10 ** 6)
    builder = StripedVolumeBuilder(backend, drive_ready_timeout=0, poll_interval=0)
    with pytest.raises(DriveNotReadyError) as excinfo:
        builder.build(2, 2)
    assert isinstance(excinfo.value, TimeoutError)
    assert isinstance(excinfo.value, StorageError)
