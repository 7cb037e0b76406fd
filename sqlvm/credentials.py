"""bcrypt password hashes: the provisioner seeds the agent with one, the agent checks against it."""
import bcrypt


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def is_password_hash(value: str) -> bool:
    """True if ``value`` looks like a bcrypt hash (``$2b$<cost>$<53 chars>``)."""
    parts = (value or "").split("$")
    if len(parts) != 4 or parts[0] or parts[1] not in ("2a", "2b", "2y"):
        return False
    return parts[2].isdigit() and len(parts[3]) == 53 and parts[3].isascii()


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
