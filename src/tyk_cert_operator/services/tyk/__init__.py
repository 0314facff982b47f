"""Tyk Gateway and Dashboard certificate API."""

from .client import TykCertificateClient
from .exceptions import (
    TykAPIError,
    TykAuthError,
    TykConnectionError,
    TykError,
    TykNotFoundError,
)

__all__ = [
    "TykCertificateClient",
    "TykError",
    "TykConnectionError",
    "TykAPIError",
    "TykAuthError",
    "TykNotFoundError",
]
