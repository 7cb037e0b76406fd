"""Error taxonomy for the deployment pipeline.

Every error is fatal: the pipeline stops at the first one and leaves any
partially created resources in place.
"""


class DeploymentError(Exception):
    """Base class for all deployment failures."""


class ConfigurationError(DeploymentError, ValueError):
    """Invalid input or disk/pool arithmetic, detected before any remote call."""


class PreconditionError(DeploymentError):
    """The target environment is not in the expected state (e.g. VM already exists)."""


class ProviderError(DeploymentError):
    """A cloud management API call failed."""


class RemoteExecutionError(DeploymentError):
    """The procedure running on the target machine failed or was unreachable."""


class StorageError(DeploymentError):
    """Disk pooling, striping or formatting failed on the target machine."""


class InsufficientDisksError(StorageError):
    """Fewer poolable disks are present than the pool plan requires."""
