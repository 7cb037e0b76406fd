from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable

from ..models import VMRequest


@runtime_checkable
class CloudProvider(Protocol):
    """Minimal contract the deployment pipeline needs from a cloud provider.
    Semantics:
      - vm_exists(): True when a VM with that name is already present in the service.
      - create_vm(): submit the VM (image, size, credential, data disks) and block until provisioned.
      - certificate_thumbprint(): SHA-1 thumbprint (hex) of the VM's management certificate.
      - fetch_certificate(): the certificate bytes (DER or PEM) matching that thumbprint.
      - management_endpoint(): base URL of the VM's remote management endpoint.
    Notes:
      - Raise ProviderError for any management API failure.
    """

    def vm_exists(self, service_name: str, computer_name: str) -> bool:
        ...

    def create_vm(self, request: VMRequest) -> Dict[str, Any]:
        ...

    def certificate_thumbprint(self, service_name: str, computer_name: str) -> str:
        ...

    def fetch_certificate(self, service_name: str, computer_name: str, thumbprint: str) -> bytes:
        ...

    def management_endpoint(self, service_name: str, computer_name: str) -> str:
        ...
