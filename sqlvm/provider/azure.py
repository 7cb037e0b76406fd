#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Azure provider for the SQL Server VM deployment.

Uses the Azure SDK (``azure-identity``, ``azure-mgmt-resource``,
``azure-mgmt-compute``, ``azure-mgmt-network``, ``azure-keyvault-certificates``)
to create one Windows VM from the SQL Server marketplace image:

- the service name is the resource group and the public DNS label;
- the VM gets N empty data disks (LUN 0..N-1);
- a self-signed management certificate (CN=<fqdn>) is created in Key Vault
  and installed on the VM through ``os_profile.secrets``;
- the storage agent configuration (admin user, bcrypt password hash, TLS paths)
  is delivered as custom data;
- a CustomScriptExtension installs the agent, gives it the certificate and
  starts it (see bootstrap.py).

All SDK failures surface as ProviderError.
"""
from __future__ import annotations

import base64
import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.keyvault.certificates import CertificateClient, CertificateContentType, CertificatePolicy, KeyType
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient

from ..config import LoggingConfig
from ..credentials import hash_password
from ..errors import ConfigurationError, ProviderError
from ..models import InstanceSize, VMRequest
from .bootstrap import EXTENSION_NAME, AgentBootstrap

SQL_PORT = 1433
AGENT_PORT = 5986

# Current-generation equivalents of the classic Azure role sizes.
INSTANCE_SIZES: Dict[InstanceSize, str] = {
    InstanceSize.EXTRA_SMALL: "Standard_B1ms",
    InstanceSize.SMALL: "Standard_A1_v2",
    InstanceSize.MEDIUM: "Standard_A2_v2",
    InstanceSize.LARGE: "Standard_A4_v2",
    InstanceSize.EXTRA_LARGE: "Standard_A8_v2",
    InstanceSize.A5: "Standard_A2m_v2",
    InstanceSize.A6: "Standard_A4m_v2",
    InstanceSize.A7: "Standard_A8m_v2",
}


def _version_key(version: str) -> Tuple[int, ...]:
    parts = []
    for piece in str(version).split("."):
        try:
            parts.append(int(piece))
        except ValueError:
            parts.append(-1)
    return tuple(parts)


def _parse_vault_url(url: str) -> Tuple[str, str, Optional[str]]:
    """Split ``https://<vault>/secrets/<name>/<version>`` into (vault_url, name, version)."""
    parsed = urlparse(url or "")
    parts = [p for p in parsed.path.split("/") if p]
    if not parsed.scheme or not parsed.netloc or len(parts) < 2:
        raise ProviderError(f"Unrecognized Key Vault URL: {url!r}")
    version = parts[2] if len(parts) > 2 else None
    return f"{parsed.scheme}://{parsed.netloc}", parts[1], version


def _certificate_thumbprint(cert: Any) -> str:
    thumbprint = getattr(getattr(cert, "properties", None), "x509_thumbprint", None)
    if not thumbprint:
        raise ProviderError(f"Certificate {getattr(cert, 'name', '')} has no thumbprint")
    return bytes(thumbprint).hex().upper()


class AzureProvider:
    """Thin wrapper over the Azure management API for one SQL Server VM."""

    def __init__(
        self,
        cfg: Dict[str, Any],
        log_cfg: LoggingConfig,
        credential: Any = None,
        compute_client: Any = None,
        network_client: Any = None,
        resource_client: Any = None,
        certificate_client: Any = None,
    ) -> None:
        self.cfg = cfg
        self.azure_cfg = cfg.get("azure", {})
        self.remote_cfg = cfg.get("remote", {})
        self.logger = log_cfg.get_logger("provider")
        self._credential = credential
        self._compute = compute_client
        self._network = network_client
        self._resources = resource_client
        self._certificates = certificate_client

    # -------------------------- clients --------------------------
    def _get_credential(self) -> Any:
        if self._credential is None:
            self._credential = DefaultAzureCredential()
        return self._credential

    def _subscription(self) -> str:
        subscription = (self.azure_cfg.get("subscription_id") or "").strip()
        if not subscription:
            raise ConfigurationError("azure.subscription_id (or AZURE_SUBSCRIPTION_ID) is required")
        return subscription

    def compute(self) -> Any:
        if self._compute is None:
            self._compute = ComputeManagementClient(self._get_credential(), self._subscription())
        return self._compute

    def network(self) -> Any:
        if self._network is None:
            self._network = NetworkManagementClient(self._get_credential(), self._subscription())
        return self._network

    def resources(self) -> Any:
        if self._resources is None:
            self._resources = ResourceManagementClient(self._get_credential(), self._subscription())
        return self._resources

    def certificates(self, vault_url: Optional[str] = None) -> Any:
        if self._certificates is None:
            url = vault_url or (self.azure_cfg.get("key_vault", {}).get("url") or "").strip()
            if not url:
                raise ConfigurationError("azure.key_vault.url is required")
            self._certificates = CertificateClient(vault_url=url, credential=self._get_credential())
        return self._certificates

    def _call(self, description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run one SDK call and map Azure errors to ProviderError."""
        try:
            return fn(*args, **kwargs)
        except AzureError as e:
            raise ProviderError(f"{description} failed: {e}") from e

    # -------------------------- naming --------------------------
    @staticmethod
    def _names(service_name: str, computer_name: str) -> Dict[str, str]:
        return {
            "resource_group": service_name,
            "vnet": f"{service_name}-vnet",
            "subnet": "default",
            "nsg": f"{computer_name}-nsg",
            "public_ip": f"{computer_name}-ip",
            "nic": f"{computer_name}-nic",
            "certificate": f"{service_name}-{computer_name}-mgmt",
        }

    def agent_port(self) -> int:
        return int(self.remote_cfg.get("port", AGENT_PORT))

    def vm_size(self, size: InstanceSize) -> str:
        overrides = self.azure_cfg.get("sizes") or {}
        return overrides.get(size.value) or INSTANCE_SIZES[size]

    # -------------------------- queries --------------------------
    def vm_exists(self, service_name: str, computer_name: str) -> bool:
        try:
            self.compute().virtual_machines.get(service_name, computer_name)
            return True
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise ProviderError(f"VM lookup for {computer_name} failed: {e}") from e

    def latest_image(self, location: str) -> Dict[str, str]:
        """Return the image reference for the newest version of the configured SQL Server image."""
        image = self.azure_cfg.get("image", {})
        publisher, offer, sku = image.get("publisher"), image.get("offer"), image.get("sku")
        versions = self._call(
            "Image lookup",
            self.compute().virtual_machine_images.list,
            location,
            publisher,
            offer,
            sku,
        )
        names = [v.name for v in versions or []]
        if not names:
            raise ProviderError(f"No image versions found for {publisher}/{offer}/{sku} in {location}")
        best = sorted(names, key=_version_key, reverse=True)[0]
        self.logger.info("Image: %s/%s/%s version %s", publisher, offer, sku, best)
        return {"publisher": publisher, "offer": offer, "sku": sku, "version": best}

    def management_endpoint(self, service_name: str, computer_name: str) -> str:
        names = self._names(service_name, computer_name)
        pip = self._call(
            "Public IP lookup",
            self.network().public_ip_addresses.get,
            names["resource_group"],
            names["public_ip"],
        )
        fqdn = getattr(getattr(pip, "dns_settings", None), "fqdn", None)
        if not fqdn:
            raise ProviderError(f"Public IP {names['public_ip']} has no DNS name")
        return f"https://{fqdn}:{self.agent_port()}"

    def _management_secret_url(self, service_name: str, computer_name: str) -> str:
        vm = self._call("VM lookup", self.compute().virtual_machines.get, service_name, computer_name)
        secrets = getattr(getattr(vm, "os_profile", None), "secrets", None) or []
        for group in secrets:
            for cert in getattr(group, "vault_certificates", None) or []:
                if getattr(cert, "certificate_url", None):
                    return cert.certificate_url
        raise ProviderError(f"VM {computer_name} has no management certificate installed")

    def certificate_thumbprint(self, service_name: str, computer_name: str) -> str:
        vault_url, name, version = _parse_vault_url(self._management_secret_url(service_name, computer_name))
        client = self.certificates(vault_url)
        if version:
            cert = self._call("Certificate lookup", client.get_certificate_version, name, version)
        else:
            cert = self._call("Certificate lookup", client.get_certificate, name)
        return _certificate_thumbprint(cert)

    def fetch_certificate(self, service_name: str, computer_name: str, thumbprint: str) -> bytes:
        vault_url, name, version = _parse_vault_url(self._management_secret_url(service_name, computer_name))
        client = self.certificates(vault_url)
        if version:
            cert = self._call("Certificate download", client.get_certificate_version, name, version)
        else:
            cert = self._call("Certificate download", client.get_certificate, name)
        if not cert.cer:
            raise ProviderError(f"Certificate {name} has no public certificate bytes")
        return bytes(cert.cer)

    # -------------------------- creation --------------------------
    def _ensure_certificate(self, name: str, fqdn: str) -> Any:
        """Return the management certificate, creating a self-signed one when absent."""
        client = self.certificates()
        try:
            cert = client.get_certificate(name)
            self.logger.info("Certificate %s already exists", name)
            return cert
        except ResourceNotFoundError:
            pass
        except AzureError as e:
            raise ProviderError(f"Certificate lookup failed: {e}") from e
        policy = CertificatePolicy(
            issuer_name="Self",
            subject=f"CN={fqdn}",
            san_dns_names=[fqdn],
            exportable=True,
            key_type=KeyType.rsa,
            key_size=2048,
            reuse_key=False,
            content_type=CertificateContentType.pkcs12,
            validity_in_months=12,
        )
        poller = self._call("Certificate creation", client.begin_create_certificate, certificate_name=name, policy=policy)
        cert = self._call("Certificate creation", poller.result)
        self.logger.info("Created self-signed certificate %s (CN=%s)", name, fqdn)
        return cert

    def _agent_custom_data(self, request: VMRequest, bootstrap: AgentBootstrap) -> str:
        agent_cfg = {
            "bind_host": "0.0.0.0",
            "bind_port": self.agent_port(),
            "auth": {
                "enabled": True,
                "username": request.admin_username,
                "password_hash": hash_password(request.admin_password),
            },
            "security": bootstrap.tls_section(),
        }
        return base64.b64encode(json.dumps(agent_cfg).encode("utf-8")).decode("ascii")

    def _nsg_rules(self) -> List[Dict[str, Any]]:
        port = self.agent_port()
        rules = []
        for priority, (name, rule_port) in enumerate((("agent-https", port), ("sql-server", SQL_PORT)), start=1):
            rules.append(
                {
                    "name": name,
                    "priority": 1000 + priority,
                    "direction": "Inbound",
                    "access": "Allow",
                    "protocol": "Tcp",
                    "source_address_prefix": "*",
                    "source_port_range": "*",
                    "destination_address_prefix": "*",
                    "destination_port_range": str(rule_port),
                }
            )
        return rules

    def _create_network(self, request: VMRequest, names: Dict[str, str]) -> Tuple[Any, Any]:
        rg, location = names["resource_group"], request.location
        vnet_cfg = self.azure_cfg.get("vnet", {})
        net = self.network()

        poller = self._call(
            "NSG creation",
            net.network_security_groups.begin_create_or_update,
            rg,
            names["nsg"],
            {"location": location, "security_rules": self._nsg_rules()},
        )
        nsg = self._call("NSG creation", poller.result)
        self.logger.info("NSG: %s", names["nsg"])

        poller = self._call(
            "VNet creation",
            net.virtual_networks.begin_create_or_update,
            rg,
            names["vnet"],
            {
                "location": location,
                "address_space": {"address_prefixes": [vnet_cfg.get("address_prefix", "10.10.0.0/16")]},
                "subnets": [
                    {
                        "name": names["subnet"],
                        "address_prefix": vnet_cfg.get("subnet_prefix", "10.10.1.0/24"),
                    }
                ],
            },
        )
        vnet = self._call("VNet creation", poller.result)
        subnet = vnet.subnets[0]
        self.logger.info("VNet: %s", names["vnet"])

        poller = self._call(
            "Public IP creation",
            net.public_ip_addresses.begin_create_or_update,
            rg,
            names["public_ip"],
            {
                "location": location,
                "sku": {"name": "Standard"},
                "public_ip_allocation_method": "Static",
                "public_ip_address_version": "IPv4",
                "dns_settings": {"domain_name_label": request.service_name.lower()},
            },
        )
        pip = self._call("Public IP creation", poller.result)
        self.logger.info("Public IP: %s (%s)", names["public_ip"], pip.dns_settings.fqdn)

        poller = self._call(
            "NIC creation",
            net.network_interfaces.begin_create_or_update,
            rg,
            names["nic"],
            {
                "location": location,
                "network_security_group": {"id": nsg.id},
                "ip_configurations": [
                    {
                        "name": f"{names['nic']}-ipconfig",
                        "subnet": {"id": subnet.id},
                        "public_ip_address": {"id": pip.id},
                    }
                ],
            },
        )
        nic = self._call("NIC creation", poller.result)
        self.logger.info("NIC: %s", names["nic"])
        return pip, nic

    def _install_agent(self, resource_group: str, request: VMRequest, bootstrap: AgentBootstrap) -> None:
        """Run the agent bootstrap extension and wait for it to finish."""
        self.logger.info("Installing agent on %s (port %d)", request.computer_name, bootstrap.port)
        poller = self._call(
            "Agent extension",
            self.compute().virtual_machine_extensions.begin_create_or_update,
            resource_group,
            request.computer_name,
            EXTENSION_NAME,
            bootstrap.extension(request.location),
        )
        self._call("Agent extension", poller.result)
        self.logger.info("Agent installed on %s", request.computer_name)

    def create_vm(self, request: VMRequest) -> Dict[str, Any]:
        """Create the resource group, network, certificate and VM; block until provisioned."""
        names = self._names(request.service_name, request.computer_name)
        vault_id = (self.azure_cfg.get("key_vault", {}).get("resource_id") or "").strip()
        if not vault_id:
            raise ConfigurationError("azure.key_vault.resource_id is required")
        vm_size = self.vm_size(request.instance_size)
        image = self.latest_image(request.location)

        group = self._call(
            "Resource group creation",
            self.resources().resource_groups.create_or_update,
            names["resource_group"],
            {"location": request.location},
        )
        self.logger.info("Resource group: %s (%s)", names["resource_group"], getattr(group, "location", request.location))

        pip, nic = self._create_network(request, names)
        fqdn = pip.dns_settings.fqdn
        cert = self._ensure_certificate(names["certificate"], fqdn)
        bootstrap = AgentBootstrap.from_cfg(
            self.azure_cfg.get("agent", {}), _certificate_thumbprint(cert), self.agent_port()
        )

        data_disks = [
            {
                "lun": lun,
                "name": f"{request.computer_name}-data{lun}",
                "create_option": "Empty",
                "disk_size_gb": request.data_disk_size_gb,
                "caching": "None",
                "managed_disk": {"storage_account_type": self.azure_cfg.get("data_disk_type", "Standard_LRS")},
            }
            for lun in range(request.data_disk_count)
        ]
        vm_parameters: Dict[str, Any] = {
            "location": request.location,
            "hardware_profile": {"vm_size": vm_size},
            "storage_profile": {
                "image_reference": image,
                "os_disk": {
                    "name": f"{request.computer_name}-osdisk",
                    "caching": "ReadWrite",
                    "create_option": "FromImage",
                    "managed_disk": {"storage_account_type": self.azure_cfg.get("os_disk_type", "StandardSSD_LRS")},
                },
                "data_disks": data_disks,
            },
            "os_profile": {
                "computer_name": request.computer_name,
                "admin_username": request.admin_username,
                "admin_password": request.admin_password,
                "custom_data": self._agent_custom_data(request, bootstrap),
                "windows_configuration": {"provision_vm_agent": True, "enable_automatic_updates": True},
                "secrets": [
                    {
                        "source_vault": {"id": vault_id},
                        "vault_certificates": [{"certificate_url": cert.secret_id, "certificate_store": "My"}],
                    }
                ],
            },
            "network_profile": {"network_interfaces": [{"id": nic.id}]},
        }
        self.logger.info(
            "Creating VM %s (%s, %d x %dGB data disks)",
            request.computer_name,
            vm_size,
            request.data_disk_count,
            request.data_disk_size_gb,
        )
        poller = self._call(
            "VM creation",
            self.compute().virtual_machines.begin_create_or_update,
            names["resource_group"],
            request.computer_name,
            vm_parameters,
        )
        vm = self._call("VM creation", poller.result)
        self.logger.info("VM %s provisioned", request.computer_name)
        self._install_agent(names["resource_group"], request, bootstrap)
        return {
            "vm_id": getattr(vm, "id", None),
            "vm_size": vm_size,
            "image": image,
            "fqdn": fqdn,
            "data_disks": [{"lun": d["lun"], "size_gb": d["disk_size_gb"]} for d in data_disks],
        }
