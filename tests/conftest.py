import hashlib
import logging
import threading
from typing import Dict, List, Optional

import pytest

from sqlvm.config import LoggingConfig
from sqlvm_agent.backend.storage import PhysicalDisk, StorageError


class FakeStorageBackend:
    """In-memory StorageBackend that records every call."""

    def __init__(self, disk_ids=(1, 2, 3, 4), letters="FGHIJK", ready_after: int = 0):
        self.disks = [PhysicalDisk(device_id=i, friendly_name=f"Msft Virtual Disk {i}", size=10 << 30) for i in disk_ids]
        self.letters = list(letters)
        self.ready_after = ready_after
        self.pools: Dict[str, List[int]] = {}
        self.virtual_disks: List[tuple] = []
        self.formatted: List[str] = []
        self.ready_checks: Dict[str, int] = {}
        self.fail_virtual_disk: Optional[str] = None
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def list_poolable_disks(self):
        self.calls.append("list")
        return list(self.disks)

    def create_pool(self, name, disk_ids):
        self.calls.append(f"pool:{name}")
        self.pools[name] = list(disk_ids)

    def create_virtual_disk(self, pool, name, columns):
        if pool == self.fail_virtual_disk:
            raise StorageError(f"cannot create {name}")
        with self._lock:
            self.calls.append(f"vdisk:{name}")
            self.virtual_disks.append((pool, name, columns))

    def format_virtual_disk(self, name, label):
        self.calls.append(f"format:{name}")
        self.formatted.append(name)
        return self.letters[len(self.formatted) - 1]

    def is_drive_ready(self, letter):
        count = self.ready_checks.get(letter, 0) + 1
        self.ready_checks[letter] = count
        return count > self.ready_after


class FakeProvider:
    """CloudProvider double; records the order of calls."""

    def __init__(self, exists: bool = False, cert_bytes: bytes = b"fake-der-management-certificate"):
        self.exists = exists
        self.cert_bytes = cert_bytes
        self.thumbprint = hashlib.sha1(cert_bytes).hexdigest().upper()
        self.calls: List[str] = []
        self.created = []
        self.fetches = 0

    def vm_exists(self, service_name, computer_name):
        self.calls.append("vm_exists")
        return self.exists

    def create_vm(self, request):
        self.calls.append("create_vm")
        self.created.append(request)
        return {
            "vm_id": f"/subscriptions/x/resourceGroups/{request.service_name}/vm/{request.computer_name}",
            "vm_size": "Standard_A2_v2",
            "fqdn": f"{request.service_name}.westus.cloudapp.azure.com",
            "data_disks": [{"lun": lun, "size_gb": request.data_disk_size_gb} for lun in range(request.data_disk_count)],
        }

    def certificate_thumbprint(self, service_name, computer_name):
        self.calls.append("certificate_thumbprint")
        return self.thumbprint

    def fetch_certificate(self, service_name, computer_name, thumbprint):
        self.calls.append("fetch_certificate")
        self.fetches += 1
        return self.cert_bytes

    def management_endpoint(self, service_name, computer_name):
        self.calls.append("management_endpoint")
        return f"https://{service_name}.westus.cloudapp.azure.com:5986"


class FakeExecutor:
    def __init__(self, endpoint, log_cfg, fail: Optional[Exception] = None):
        self.endpoint = endpoint
        self.requests = []
        self.ready_calls = []
        self.fail = fail

    def wait_until_ready(self, timeout=900, interval=15):
        self.ready_calls.append((timeout, interval))
        return {"status": "healthy"}

    def run(self, request):
        if self.fail:
            raise self.fail
        self.requests.append(request)
        return {"status": "success", "operation": request.operation, "volumes": []}


@pytest.fixture
def log_cfg():
    return LoggingConfig(level="DEBUG")


@pytest.fixture
def fake_backend():
    return FakeStorageBackend()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def fake_executor_cls():
    return FakeExecutor


@pytest.fixture
def fake_backend_cls():
    return FakeStorageBackend


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv("AZURE_SUBSCRIPTION_ID", raising=False)
    monkeypatch.delenv("SQLVM_LOG_LEVEL", raising=False)
    monkeypatch.delenv("SQLVM_AGENT_HOST", raising=False)
    monkeypatch.delenv("SQLVM_AGENT_PORT", raising=False)
    monkeypatch.setenv("SQLVM_CONFIG", str(tmp_path / "missing-config.json"))
    monkeypatch.setenv("SQLVM_AGENT_CONFIG", str(tmp_path / "missing-agent-config.json"))
    monkeypatch.delenv("SQLVM_AGENT_MODE", raising=False)
    monkeypatch.delenv("SQLVM_AGENT_PFX_PASSWORD", raising=False)


@pytest.fixture(autouse=True)
def _reset_log_handlers():
    yield
    # handlers bind the stderr current at apply() time; CliRunner swaps it per invoke
    for name in ("sqlvm", "sqlvm-agent"):
        logging.getLogger(name).handlers.clear()
