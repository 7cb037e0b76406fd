"""
Helper functions for running T-SQL through sqlcmd.
"""

import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger("sqlvm-agent")

DEFAULT_SQLCMD = "sqlcmd"
DEFAULT_SERVER = "localhost"


class DatabaseError(RuntimeError):
    """The database engine rejected a statement."""


def sqlcmd_command(query: str, sqlcmd: Optional[str] = None, server: Optional[str] = None) -> List[str]:
    # -E: Windows integrated auth as the agent's service account; -b: exit non-zero on SQL errors
    return [sqlcmd or DEFAULT_SQLCMD, "-S", server or DEFAULT_SERVER, "-E", "-b", "-Q", query]


def execute_sql(query: str, sqlcmd: Optional[str] = None, server: Optional[str] = None) -> str:
    """Submit one batch; raise DatabaseError on any engine or launcher failure."""
    cmd = sqlcmd_command(query, sqlcmd, server)
    logger.info("Executing T-SQL on %s", cmd[2])
    logger.debug("T-SQL: %s", query)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise DatabaseError(f"Failed to launch {cmd[0]}: {e}") from e
    if result.returncode != 0:
        error_msg = result.stdout.strip() or result.stderr.strip() or f"sqlcmd exited with {result.returncode}"
        raise DatabaseError(error_msg)
    return result.stdout
