"""External services used by the operator."""

from .base import CertificateStore, ResourceStore

__all__ = ["CertificateStore", "ResourceStore"]
