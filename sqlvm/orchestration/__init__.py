# Deployment pipeline
from .deploy import PROVISION_STORAGE, Deployment

__all__ = ["Deployment", "PROVISION_STORAGE"]
