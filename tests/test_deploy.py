import json

import pytest

from sqlvm.config import ConfigManager
from sqlvm.errors import ConfigurationError, PreconditionError, RemoteExecutionError
from sqlvm.models import InstanceSize, VMRequest
from sqlvm.orchestration import PROVISION_STORAGE, Deployment


@pytest.fixture
def cfg(tmp_path):
    cfg = ConfigManager().load_config()
    cfg["remote"]["trust_dir"] = str(tmp_path / "trust")
    cfg["remote"]["ready_timeout"] = 5
    cfg["remote"]["ready_interval"] = 0
    return cfg


@pytest.fixture
def request_svc1():
    return VMRequest(
        service_name="svc1",
        location="West US",
        computer_name="backend",
        instance_size=InstanceSize.MEDIUM,
        admin_username="sqladmin",
        admin_password="Passw0rd!",
    )


@pytest.fixture
def executors(fake_executor_cls):
    created = []

    def factory(endpoint, log_cfg):
        executor = fake_executor_cls(endpoint, log_cfg)
        created.append(executor)
        return executor

    factory.created = created
    return factory


def test_end_to_end_deployment(cfg, fake_provider, log_cfg, executors, request_svc1):
    result = Deployment(cfg, fake_provider, log_cfg, executor_factory=executors).run(request_svc1)

    assert fake_provider.calls[:2] == ["vm_exists", "create_vm"]
    created = fake_provider.created[0]
    assert (created.data_disk_count, created.data_disk_size_gb) == (4, 10)
    assert created.instance_size is InstanceSize.MEDIUM

    assert result["certificate_imported"] is True
    executor = executors.created[0]
    assert executor.endpoint.base_url == "https://svc1.westus.cloudapp.azure.com:5986"
    assert executor.endpoint.verify.endswith("ca-bundle.pem")
    assert executor.ready_calls == [(5.0, 0.0)]
    (request,) = executor.requests
    assert request.operation == PROVISION_STORAGE
    assert (request.parameters["pool_count"], request.parameters["disks_per_pool"]) == (2, 2)

    assert result["status"] == "success"
    assert "admin_password" not in result["request"]
    assert [d["lun"] for d in result["vm"]["data_disks"]] == [0, 1, 2, 3]
    json.dumps(result)


def test_trust_happens_before_any_remote_call(cfg, fake_provider, log_cfg, executors, request_svc1):
    Deployment(cfg, fake_provider, log_cfg, executor_factory=executors).run(request_svc1)
    calls = fake_provider.calls
    assert calls.index("fetch_certificate") < calls.index("management_endpoint")


def test_existing_vm_is_a_precondition_error(cfg, fake_provider_cls, log_cfg, executors, request_svc1):
    provider = fake_provider_cls(exists=True)
    with pytest.raises(PreconditionError, match="backend"):
        Deployment(cfg, provider, log_cfg, executor_factory=executors).run(request_svc1)
    assert provider.calls == ["vm_exists"]
    assert executors.created == []


def test_bad_pool_arithmetic_fails_before_any_provider_call(cfg, fake_provider, log_cfg, executors, request_svc1):
    request_svc1.data_disk_count = 3
    with pytest.raises(ConfigurationError):
        Deployment(cfg, fake_provider, log_cfg, executor_factory=executors).run(request_svc1)
    assert fake_provider.calls == []


def test_remote_failure_propagates_without_rollback(cfg, fake_provider, log_cfg, fake_executor_cls, request_svc1):
    def factory(endpoint, log_cfg):
        return fake_executor_cls(endpoint, log_cfg, fail=RemoteExecutionError("Agent error (500): disk busy"))

    with pytest.raises(RemoteExecutionError, match="disk busy"):
        Deployment(cfg, fake_provider, log_cfg, executor_factory=factory).run(request_svc1)
    assert fake_provider.calls.count("create_vm") == 1


def test_procedure_request_carries_database_settings(cfg, fake_provider, log_cfg):
    cfg["database"] = {"name": "Sales", "file_prefix": "Sales"}
    request = Deployment(cfg, fake_provider, log_cfg).procedure_request()
    assert request.parameters == {
        "pool_count": 2,
        "disks_per_pool": 2,
        "pool_prefix": "Pool",
        "database": "Sales",
        "file_prefix": "Sales",
    }
