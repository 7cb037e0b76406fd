# Utilities module
from .auth import build_auth_dependency
from .validation import require_positive_int, validate_name

__all__ = ["build_auth_dependency", "require_positive_int", "validate_name"]
