"""Tyk API exceptions."""

from __future__ import annotations

from ...utils.errors import OperatorError


class TykError(OperatorError):
    """Base exception for Tyk API errors."""


class TykConnectionError(TykError):
    """Raised when the Tyk Gateway or Dashboard cannot be reached."""


class TykAPIError(TykError):
    """Raised when the Tyk API returns an error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message.
            status_code: HTTP status code.
            details: Additional details.
        """
        super().__init__(message, details)
        self.status_code = status_code


class TykAuthError(TykAPIError):
    """Raised when Tyk rejects the configured credentials."""


class TykNotFoundError(TykAPIError):
    """Raised when a Tyk resource is not found."""
