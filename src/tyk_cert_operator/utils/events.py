"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_API_DEFINITION_UPDATED,
    EVENT_REASON_CERTIFICATE_DELETED,
    EVENT_REASON_CERTIFICATE_UPLOADED,
    EVENT_REASON_RECONCILE_FAILED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (needs apiVersion, kind and metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_certificate_uploaded(body: dict[str, Any], cert_id: str) -> None:
    """Emit certificate uploaded event."""
    emit_event(body, EVENT_REASON_CERTIFICATE_UPLOADED, f"Certificate {cert_id} uploaded to Tyk")


def emit_certificate_deleted(body: dict[str, Any], cert_id: str) -> None:
    """Emit certificate deleted event."""
    emit_event(body, EVENT_REASON_CERTIFICATE_DELETED, f"Certificate {cert_id} deleted from Tyk")


def emit_api_definition_updated(body: dict[str, Any], api_definition: str, cert_id: str) -> None:
    """Emit ApiDefinition updated event."""
    emit_event(
        body,
        EVENT_REASON_API_DEFINITION_UPDATED,
        f"ApiDefinition {api_definition} now references certificate {cert_id}",
    )
