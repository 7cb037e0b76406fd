"""Authentication helpers for the storage agent."""
from __future__ import annotations

import logging
import secrets
from typing import Any, Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from sqlvm.credentials import is_password_hash, verify_password

logger = logging.getLogger("sqlvm-agent")


class AuthConfigError(RuntimeError):
    """Raised when the auth section is enabled but incomplete."""


class PasswordAuthenticator:
    """Check HTTP Basic credentials against the provisioned bcrypt hash."""

    def __init__(self, username: str, password_hash: str) -> None:
        if not username or not password_hash:
            raise AuthConfigError("auth.username and auth.password_hash are required")
        if not is_password_hash(password_hash):
            raise AuthConfigError("auth.password_hash is not a bcrypt hash")
        self.username = username
        self.password_hash = password_hash

    def authenticate(self, username: str, password: str) -> bool:
        user_ok = secrets.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        password_ok = verify_password(password, self.password_hash)
        return user_ok and password_ok


def _enabled_value(value: Any) -> bool:
    """Normalize truthy/falsey configuration values."""
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def build_auth_dependency(config: Optional[dict]) -> Optional[Callable[[HTTPBasicCredentials], str]]:
    """Construct a FastAPI dependency that enforces HTTP Basic against the configured hash."""
    if not config or not isinstance(config, dict):
        logger.info("Auth section not configured; running without authentication")
        return None
    if not _enabled_value(config.get("enabled")):
        logger.info("Auth section disabled explicitly; running without authentication")
        return None
    authenticator = PasswordAuthenticator(
        username=config.get("username", ""),
        password_hash=config.get("password_hash", ""),
    )
    basic = HTTPBasic(auto_error=False)

    def dependency(credentials: Optional[HTTPBasicCredentials] = Depends(basic)) -> str:
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        if not authenticator.authenticate(credentials.username, credentials.password):
            logger.warning("Authentication failed for user %s", credentials.username)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    logger.info("Authentication enabled for user '%s'", authenticator.username)
    return dependency
