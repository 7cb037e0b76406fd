"""
Inbound firewall rule for the SQL Server port.
"""

import logging
from typing import Optional

from .powershell import PowerShellError, ps_quote, run_powershell

logger = logging.getLogger("sqlvm-agent")

DEFAULT_RULE_NAME = "SQL Server (TCP 1433)"
DEFAULT_SQL_PORT = 1433


class FirewallError(RuntimeError):
    pass


def open_inbound_tcp(
    port: int = DEFAULT_SQL_PORT, rule_name: str = DEFAULT_RULE_NAME, powershell: Optional[str] = None
) -> bool:
    """Allow inbound TCP on ``port``. Returns False when the rule already exists."""
    script = (
        f"if (Get-NetFirewallRule -DisplayName {ps_quote(rule_name)} -ErrorAction SilentlyContinue) "
        "{ 'exists' } else { "
        f"New-NetFirewallRule -DisplayName {ps_quote(rule_name)} -Direction Inbound "
        f"-Protocol TCP -LocalPort {int(port)} -Action Allow | Out-Null; 'created' }}"
    )
    try:
        output = run_powershell(script, powershell).strip()
    except PowerShellError as e:
        raise FirewallError(f"Failed to open TCP {port}: {e}") from e
    created = output.endswith("created")
    logger.info("Firewall rule '%s' %s", rule_name, "created" if created else "already present")
    return created
