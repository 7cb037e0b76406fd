"""
Agent bootstrap for a fresh Windows VM.

The VM is created with the agent config as custom data and the management
certificate in ``LocalMachine\\My``. A CustomScriptExtension then runs the
script built here, elevated, once:

- install Python and the ``sqlvm-agent`` distribution;
- export the management certificate and hand it to ``sqlvm-agent install-tls``,
  which writes the PEM cert/key pair named in the agent's ``security.tls``;
- open the agent port in Windows Firewall;
- register and start a SYSTEM scheduled task that runs the agent at boot.
"""
import base64
from dataclasses import dataclass
from typing import Any, Dict, List

from .. import __version__

EXTENSION_NAME = "sqlvm-agent"
EXTENSION_PUBLISHER = "Microsoft.Compute"
EXTENSION_TYPE = "CustomScriptExtension"
EXTENSION_VERSION = "1.10"

AGENT_DEFAULTS: Dict[str, Any] = {
    "package": f"sqlvm-deploy=={__version__}",
    "python_installer_url": "https://www.python.org/ftp/python/3.12.7/python-3.12.7-amd64.exe",
    "python_dir": r"C:\Python312",
    "tls_dir": r"C:\ProgramData\sqlvm-agent\tls",
    "task_name": "sqlvm-agent",
}


def _quote(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


@dataclass
class AgentBootstrap:
    """Settings for one agent install; ``thumbprint`` names the cert in LocalMachine\\My."""

    thumbprint: str
    port: int
    package: str = AGENT_DEFAULTS["package"]
    python_installer_url: str = AGENT_DEFAULTS["python_installer_url"]
    python_dir: str = AGENT_DEFAULTS["python_dir"]
    tls_dir: str = AGENT_DEFAULTS["tls_dir"]
    task_name: str = AGENT_DEFAULTS["task_name"]

    @classmethod
    def from_cfg(cls, agent_cfg: Dict[str, Any], thumbprint: str, port: int) -> "AgentBootstrap":
        merged = dict(AGENT_DEFAULTS)
        merged.update({k: v for k, v in (agent_cfg or {}).items() if k in AGENT_DEFAULTS and v})
        return cls(thumbprint=thumbprint.upper(), port=int(port), **merged)

    @property
    def cert_file(self) -> str:
        return self.tls_dir.rstrip("\\") + r"\agent.crt"

    @property
    def key_file(self) -> str:
        return self.tls_dir.rstrip("\\") + r"\agent.key"

    def tls_section(self) -> Dict[str, Any]:
        return {"tls": {"enabled": True, "cert_file": self.cert_file, "key_file": self.key_file}}

    def script(self) -> str:
        python_dir = self.python_dir.rstrip("\\")
        python_exe = python_dir + r"\python.exe"
        agent_exe = python_dir + r"\Scripts\sqlvm-agent.exe"
        cert_path = "Cert:\\LocalMachine\\My\\" + self.thumbprint
        rule = f"sqlvm-agent (TCP {self.port})"
        lines: List[str] = [
            "$ErrorActionPreference = 'Stop'",
            "$ProgressPreference = 'SilentlyContinue'",
            "[Net.ServicePointManager]::SecurityProtocol = [Net.SecurityProtocolType]::Tls12",
            "$installer = Join-Path $env:TEMP 'python-installer.exe'",
            f"Invoke-WebRequest -UseBasicParsing -Uri {_quote(self.python_installer_url)} -OutFile $installer",
            "Start-Process -FilePath $installer -Wait -ArgumentList "
            f"'/quiet','InstallAllUsers=1','Include_test=0',{_quote('TargetDir=' + python_dir)}",
            f"& {_quote(python_exe)} -m pip install --upgrade {_quote(self.package)}",
            "if ($LASTEXITCODE -ne 0) { throw 'pip install failed' }",
            f"$agent = {_quote(agent_exe)}",
            f"$cert = Get-Item {_quote(cert_path)}",
            "$pfx = Join-Path $env:TEMP 'sqlvm-agent.pfx'",
            "$env:SQLVM_AGENT_PFX_PASSWORD = [guid]::NewGuid().ToString()",
            "$secret = ConvertTo-SecureString $env:SQLVM_AGENT_PFX_PASSWORD -AsPlainText -Force",
            "Export-PfxCertificate -Cert $cert -FilePath $pfx -Password $secret | Out-Null",
            "$env:SQLVM_AGENT_MODE = 'cli'",
            "& $agent install-tls $pfx",
            "$code = $LASTEXITCODE",
            "Remove-Item $pfx -Force",
            "Remove-Item Env:SQLVM_AGENT_MODE, Env:SQLVM_AGENT_PFX_PASSWORD",
            "if ($code -ne 0) { throw 'sqlvm-agent install-tls failed' }",
            f"if (-not (Get-NetFirewallRule -DisplayName {_quote(rule)} -ErrorAction SilentlyContinue)) {{",
            f"  New-NetFirewallRule -DisplayName {_quote(rule)} -Direction Inbound -Protocol TCP "
            f"-LocalPort {self.port} -Action Allow | Out-Null",
            "}",
            "$action = New-ScheduledTaskAction -Execute $agent",
            "$trigger = New-ScheduledTaskTrigger -AtStartup",
            "$principal = New-ScheduledTaskPrincipal -UserId 'SYSTEM' -LogonType ServiceAccount -RunLevel Highest",
            "$settings = New-ScheduledTaskSettingsSet -ExecutionTimeLimit ([TimeSpan]::Zero) "
            "-RestartCount 3 -RestartInterval (New-TimeSpan -Minutes 1)",
            f"Register-ScheduledTask -TaskName {_quote(self.task_name)} -Action $action -Trigger $trigger "
            "-Principal $principal -Settings $settings -Force | Out-Null",
            f"Start-ScheduledTask -TaskName {_quote(self.task_name)}",
        ]
        return "\n".join(lines)

    def command(self) -> str:
        encoded = base64.b64encode(self.script().encode("utf-16-le")).decode("ascii")
        return f"powershell.exe -NoProfile -ExecutionPolicy Bypass -EncodedCommand {encoded}"

    def extension(self, location: str) -> Dict[str, Any]:
        """Extension parameters for ``virtual_machine_extensions.begin_create_or_update``."""
        return {
            "location": location,
            "publisher": EXTENSION_PUBLISHER,
            "type_properties_type": EXTENSION_TYPE,
            "type_handler_version": EXTENSION_VERSION,
            "auto_upgrade_minor_version": True,
            "protected_settings": {"commandToExecute": self.command()},
        }
