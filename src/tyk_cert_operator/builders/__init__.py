"""Builders for operator collaborators."""

from .certificate_store import create_certificate_store

__all__ = ["create_certificate_store"]
