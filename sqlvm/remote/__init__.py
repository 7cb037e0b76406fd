# Remote procedure execution over the agent's HTTPS API
from .executor import AgentEndpoint, RemoteExecutor

__all__ = ["AgentEndpoint", "RemoteExecutor"]
