"""Operator exceptions and error sanitization utilities."""

from __future__ import annotations

import re


class OperatorError(Exception):
    """Base exception for operator errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            details: Additional details
        """
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(OperatorError):
    """Raised when operator configuration is invalid."""


class ContextResolutionError(OperatorError):
    """Raised when the organization or Tyk environment cannot be resolved."""


class NotFoundError(OperatorError):
    """Raised when a Kubernetes resource vanished or does not exist."""


class ConflictError(OperatorError):
    """Raised when an update lost an optimistic-concurrency race."""


class CertificateUploadError(OperatorError):
    """Raised when certificate material could not be uploaded to Tyk."""


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"x-tyk-authorization[:\s]+([A-Za-z0-9\-_\.]+)",
    r"authorization[:\s]+([A-Za-z0-9\-_\.]+)",
    r"org[_\s]?id[:\s=]+([a-zA-Z0-9\-_]+)",
]

# PEM blocks are always removed, including private keys pasted into messages
PEM_PATTERN = re.compile(
    r"-----BEGIN [A-Z ]+-----.*?-----END [A-Z ]+-----",
    flags=re.DOTALL,
)

# Fields to redact completely
SENSITIVE_FIELDS = {
    "auth",
    "password",
    "secret",
    "token",
    "tls.key",
    "private_key",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = PEM_PATTERN.sub("[REDACTED PEM]", message)

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"{re.escape(field)}[:=]\s*([^\s,;\)]+)",
            f"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))
