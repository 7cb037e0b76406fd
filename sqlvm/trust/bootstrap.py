#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Trust bootstrapper: make the new VM's self-signed management certificate
trusted locally before any remote call is made over HTTPS.
"""
from pathlib import Path

from ..config import LoggingConfig
from ..errors import ProviderError
from ..provider.base import CloudProvider
from .store import TrustStore, normalize_thumbprint, thumbprint_of


class TrustBootstrapper:
    """Fetch a machine's management certificate and import it into the local trust store."""

    def __init__(self, provider: CloudProvider, store: TrustStore, log_cfg: LoggingConfig):
        self.provider = provider
        self.store = store
        self.logger = log_cfg.get_logger("trust")

    @property
    def bundle_path(self) -> Path:
        return self.store.bundle_path

    def ensure_trusted(self, service_name: str, computer_name: str) -> bool:
        """Import the certificate unless its thumbprint is already trusted.

        Returns True when the store was changed, False when it was a no-op.
        """
        try:
            thumbprint = normalize_thumbprint(self.provider.certificate_thumbprint(service_name, computer_name))
        except ValueError as e:
            raise ProviderError(f"Provider returned an unusable thumbprint: {e}") from e
        cert_bytes = self.provider.fetch_certificate(service_name, computer_name, thumbprint)
        if not cert_bytes:
            raise ProviderError(f"Empty certificate returned for {computer_name}")
        if self.store.contains(thumbprint):
            self.logger.info("Certificate %s for %s already trusted", thumbprint, computer_name)
            return False
        actual = thumbprint_of(cert_bytes)
        if actual != thumbprint:
            raise ProviderError(f"Certificate thumbprint mismatch for {computer_name}: expected {thumbprint}, got {actual}")
        self.store.add(thumbprint, cert_bytes)
        return True
