# Local certificate trust
from .bootstrap import TrustBootstrapper
from .store import TrustStore, normalize_thumbprint, thumbprint_of

__all__ = ["TrustBootstrapper", "TrustStore", "normalize_thumbprint", "thumbprint_of"]
