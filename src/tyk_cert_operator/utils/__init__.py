"""Utility functions for the Tyk Secret Certificate Operator."""

from .certs import calculate_fingerprint, certificate_id
from .context import (
    OperatorContext,
    get_context_dict,
    get_correlation_id,
    resolve_context,
    set_correlation_id,
    with_correlation_id,
)
from .errors import (
    ConflictError,
    NotFoundError,
    OperatorError,
    sanitize_exception,
)
from .events import emit_event
from .rate_limit import rate_limit_k8s, rate_limit_tyk
from .secrets import decode_secret_data, get_tls_material

__all__ = [
    "calculate_fingerprint",
    "certificate_id",
    "OperatorContext",
    "resolve_context",
    "set_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "OperatorError",
    "NotFoundError",
    "ConflictError",
    "sanitize_exception",
    "emit_event",
    "rate_limit_k8s",
    "rate_limit_tyk",
    "decode_secret_data",
    "get_tls_material",
]
