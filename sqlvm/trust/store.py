"""Local trust store: one PEM file per thumbprint plus an aggregated CA bundle for requests."""
from __future__ import annotations

import hashlib
import logging
import re
import ssl
from pathlib import Path
from typing import List, Optional

BUNDLE_NAME = "ca-bundle.pem"

_THUMBPRINT_RE = re.compile(r"^[0-9A-F]{40}$")


def normalize_thumbprint(value: str) -> str:
    """Upper-case hex without separators; raise ValueError on anything else."""
    cleaned = re.sub(r"[\s:]", "", value or "").upper()
    if not _THUMBPRINT_RE.match(cleaned):
        raise ValueError(f"Invalid certificate thumbprint '{value}'")
    return cleaned


def to_der(cert_bytes: bytes) -> bytes:
    """Accept DER or PEM certificate bytes and return DER."""
    if cert_bytes.lstrip().startswith(b"-----BEGIN"):
        return ssl.PEM_cert_to_DER_cert(cert_bytes.decode("ascii"))
    return cert_bytes


def thumbprint_of(cert_bytes: bytes) -> str:
    return hashlib.sha1(to_der(cert_bytes)).hexdigest().upper()


class TrustStore:
    """Directory-backed set of trusted certificates."""

    def __init__(self, directory: Path, logger: Optional[logging.Logger] = None):
        self.directory = Path(directory).expanduser()
        self.logger = logger or logging.getLogger("sqlvm.trust")

    @property
    def bundle_path(self) -> Path:
        return self.directory / BUNDLE_NAME

    def _cert_path(self, thumbprint: str) -> Path:
        return self.directory / f"{normalize_thumbprint(thumbprint)}.pem"

    def contains(self, thumbprint: str) -> bool:
        return self._cert_path(thumbprint).exists()

    def thumbprints(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.pem") if p.name != BUNDLE_NAME)

    def add(self, thumbprint: str, cert_bytes: bytes) -> Path:
        """Write the certificate as PEM and rebuild the bundle."""
        path = self._cert_path(thumbprint)
        self.directory.mkdir(parents=True, exist_ok=True)
        pem = ssl.DER_cert_to_PEM_cert(to_der(cert_bytes))
        path.write_text(pem, encoding="ascii")
        self.rebuild_bundle()
        self.logger.info("Trusted certificate %s (%s)", normalize_thumbprint(thumbprint), path)
        return path

    def rebuild_bundle(self) -> Path:
        parts = []
        for thumbprint in self.thumbprints():
            parts.append((self.directory / f"{thumbprint}.pem").read_text(encoding="ascii"))
        self.bundle_path.write_text("".join(parts), encoding="ascii")
        return self.bundle_path
