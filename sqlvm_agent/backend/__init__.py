from .database import DatabaseError, execute_sql
from .firewall import FirewallError, open_inbound_tcp
from .powershell import PowerShellError, run_powershell, run_powershell_json
from .storage import StorageError, StorageSpacesBackend, StripedVolumeBuilder

__all__ = [
    "DatabaseError",
    "FirewallError",
    "PowerShellError",
    "StorageError",
    "StorageSpacesBackend",
    "StripedVolumeBuilder",
    "execute_sql",
    "open_inbound_tcp",
    "run_powershell",
    "run_powershell_json",
]
