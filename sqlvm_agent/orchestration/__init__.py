# Orchestration module for storage procedures
from .procedures import (
    CREATE_DATABASE,
    CREATE_STRIPED_VOLUMES,
    OPEN_FIREWALL,
    PROVISION_STORAGE,
    ProcedureRunner,
)

__all__ = [
    "CREATE_DATABASE",
    "CREATE_STRIPED_VOLUMES",
    "OPEN_FIREWALL",
    "PROVISION_STORAGE",
    "ProcedureRunner",
]
