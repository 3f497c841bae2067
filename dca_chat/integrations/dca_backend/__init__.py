"""DCA backend REST client initialization helpers."""

from .client import DcaBackendClient, DcaBackendError
from .config import DcaBackendSettings, get_dca_backend_settings

__all__ = [
    "DcaBackendClient",
    "DcaBackendError",
    "DcaBackendSettings",
    "get_dca_backend_settings",
]
