"""TLS material for the agent listener.

The bootstrap exports the management certificate from ``LocalMachine\\My``
as a password-protected PFX; ``install_pfx`` splits it into the PEM
cert/key pair named by ``security.tls`` so uvicorn can serve it.
"""
import logging
from pathlib import Path
from typing import Any, Dict

from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, pkcs12

logger = logging.getLogger("sqlvm-agent")


class TLSConfigError(RuntimeError):
    """The TLS section is unusable, or the listener's files are missing."""


def _tls_section(security_cfg: Any) -> Dict[str, Any]:
    tls_cfg = (security_cfg or {}).get("tls") if isinstance(security_cfg, dict) else None
    return tls_cfg if isinstance(tls_cfg, dict) else {}


def tls_paths(security_cfg: Any) -> Dict[str, str]:
    tls_cfg = _tls_section(security_cfg)
    cert_file, key_file = tls_cfg.get("cert_file"), tls_cfg.get("key_file")
    if not cert_file or not key_file:
        raise TLSConfigError("security.tls.cert_file and security.tls.key_file are required")
    return {"cert_file": str(cert_file), "key_file": str(key_file)}


def uvicorn_tls_options(security_cfg: Any) -> Dict[str, Any]:
    """Map ``security.tls`` to uvicorn's ``ssl_certfile``/``ssl_keyfile``; empty when disabled."""
    if _tls_section(security_cfg).get("enabled", True) is False:
        logger.warning("TLS disabled; the agent will serve plain HTTP")
        return {}
    paths = tls_paths(security_cfg)
    for label, path in paths.items():
        if not Path(path).is_file():
            raise TLSConfigError(f"TLS {label} not found at {path}; run 'sqlvm-agent install-tls' first")
    logger.info("TLS enabled with %s", paths["cert_file"])
    return {"ssl_certfile": paths["cert_file"], "ssl_keyfile": paths["key_file"]}


def install_pfx(pfx_path: str, password: str, security_cfg: Any) -> Dict[str, str]:
    """Write the PFX's certificate and private key as PEM files; return their paths."""
    paths = tls_paths(security_cfg)
    try:
        data = Path(pfx_path).read_bytes()
    except OSError as e:
        raise TLSConfigError(f"Cannot read {pfx_path}: {e}") from e
    try:
        key, cert, _ = pkcs12.load_key_and_certificates(data, password.encode("utf-8") if password else None)
    except ValueError as e:
        raise TLSConfigError(f"Cannot open {pfx_path}: {e}") from e
    if key is None or cert is None:
        raise TLSConfigError(f"{pfx_path} must hold both a certificate and its private key")

    cert_path, key_path = Path(paths["cert_file"]), Path(paths["key_file"])
    cert_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.parent.mkdir(parents=True, exist_ok=True)
    cert_path.write_bytes(cert.public_bytes(Encoding.PEM))
    key_path.write_bytes(key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()))
    logger.info("Installed TLS certificate %s (%s)", cert.subject.rfc4514_string(), cert_path)
    return paths
