"""Reconcile handlers for watched resources."""

from .base import BaseHandler
from .secret_cert import SecretCertReconciler

__all__ = ["BaseHandler", "SecretCertReconciler"]
