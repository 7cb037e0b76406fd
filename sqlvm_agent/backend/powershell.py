"""
Helper functions for running PowerShell on the agent host.
"""

import json
import logging
import subprocess
from typing import Any, List, Optional, Sequence

logger = logging.getLogger("sqlvm-agent")

DEFAULT_POWERSHELL = "powershell.exe"


class PowerShellError(RuntimeError):
    """A PowerShell command exited non-zero."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def ps_quote(value: Any) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def ps_array(values: Sequence[Any]) -> str:
    return "@(" + ",".join(ps_quote(v) for v in values) + ")"


def run_powershell(script: str, executable: Optional[str] = None) -> str:
    """Run a script non-interactively and return its stdout."""
    cmd = [
        executable or DEFAULT_POWERSHELL,
        "-NoProfile",
        "-NonInteractive",
        "-ExecutionPolicy",
        "Bypass",
        "-Command",
        "$ErrorActionPreference = 'Stop'; " + script,
    ]
    logger.debug("powershell: %s", script)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise PowerShellError(f"Cannot run {cmd[0]}: {e}") from e
    if result.returncode != 0:
        error_msg = result.stderr.strip() or result.stdout.strip()
        raise PowerShellError(error_msg or f"PowerShell exited with {result.returncode}", result.returncode, result.stderr)
    return result.stdout


def run_powershell_json(script: str, executable: Optional[str] = None) -> List[Any]:
    """Run a script whose output is piped through ConvertTo-Json; always return a list."""
    output = run_powershell(f"{script} | ConvertTo-Json -Depth 4 -Compress", executable).strip()
    if not output:
        return []
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise PowerShellError(f"Unexpected PowerShell output: {output[:200]}") from e
    # ConvertTo-Json emits a bare object for single-element pipelines
    return data if isinstance(data, list) else [data]
