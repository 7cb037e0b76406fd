# Cloud provider collaborators
from .azure import INSTANCE_SIZES, AzureProvider
from .base import CloudProvider

__all__ = ["AzureProvider", "CloudProvider", "INSTANCE_SIZES"]
