"""Cheap admit/drop classification of Secret change notifications.

The watch layer cannot always hand over a fully typed object, so this module
decides from the serialized notification alone whether a change concerns a
``kubernetes.io/tls`` Secret. It is a best-effort filter; the reconciler checks
the type again on the object it fetches.

Two envelope shapes are understood:

* legacy: ``{"Meta": {"type": ...}, "MetaNew": {"type": ...}}``
* current: ``{"ObjectOld": {...}, "ObjectNew": {...}, "Object": {...}}``

Every slot is optional. Keys match case-insensitively, exact spelling first.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Union

from . import metrics
from .constants import TLS_SECRET_TYPE

EVENT_CREATE = "create"
EVENT_UPDATE = "update"
EVENT_DELETE = "delete"

Payload = Union[bytes, bytearray, str, Mapping[str, Any]]


class EnvelopeDecodeError(ValueError):
    """Raised when a notification does not fit any known envelope shape."""


@dataclass(frozen=True)
class LegacyEnvelope:
    meta_type: str = ""
    meta_new_type: str = ""


@dataclass(frozen=True)
class ObjectEnvelope:
    old_type: str = ""
    new_type: str = ""
    object_type: str = ""


Envelope = Union[LegacyEnvelope, ObjectEnvelope]


def _lookup(doc: Mapping[str, Any], field: str) -> Any:
    if field in doc:
        return doc[field]
    folded = field.casefold()
    for key, value in doc.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
    return None


def _slot_type(doc: Mapping[str, Any], field: str) -> str:
    """Read ``doc[field].type``, treating absent or null values as empty."""
    slot = _lookup(doc, field)
    if slot is None:
        return ""
    if not isinstance(slot, Mapping):
        raise EnvelopeDecodeError(f"{field} must be an object, got {type(slot).__name__}")
    type_ = _lookup(slot, "type")
    if type_ is None:
        return ""
    if not isinstance(type_, str):
        raise EnvelopeDecodeError(f"{field}.type must be a string, got {type(type_).__name__}")
    return type_


def _decode_legacy(doc: Mapping[str, Any]) -> LegacyEnvelope | None:
    envelope = LegacyEnvelope(
        meta_type=_slot_type(doc, "Meta"),
        meta_new_type=_slot_type(doc, "MetaNew"),
    )
    if not envelope.meta_type and not envelope.meta_new_type:
        return None
    return envelope


def _decode_object(doc: Mapping[str, Any]) -> ObjectEnvelope:
    return ObjectEnvelope(
        old_type=_slot_type(doc, "ObjectOld"),
        new_type=_slot_type(doc, "ObjectNew"),
        object_type=_slot_type(doc, "Object"),
    )


# Tried in order; the first decoder returning an envelope wins.
DECODERS: tuple[Callable[[Mapping[str, Any]], Envelope | None], ...] = (
    _decode_legacy,
    _decode_object,
)


def _load(payload: Payload) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        return payload
    try:
        doc = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise EnvelopeDecodeError(f"notification is not valid JSON: {e}") from e
    if not isinstance(doc, Mapping):
        raise EnvelopeDecodeError(f"notification must be a JSON object, got {type(doc).__name__}")
    return doc


def decode_envelope(payload: Payload) -> Envelope:
    """Decode a notification into the first envelope shape it fits.

    Raises:
        EnvelopeDecodeError: If the payload is malformed
    """
    doc = _load(payload)
    for decoder in DECODERS:
        envelope = decoder(doc)
        if envelope is not None:
            return envelope
    return ObjectEnvelope()


def is_tls_type(payload: Payload) -> bool:
    """Return True if the notification concerns a TLS Secret.

    Malformed notifications are dropped.
    """
    try:
        envelope = decode_envelope(payload)
    except EnvelopeDecodeError:
        return False

    if isinstance(envelope, LegacyEnvelope):
        # update events carry the new object in MetaNew
        if envelope.meta_new_type:
            return envelope.meta_new_type == TLS_SECRET_TYPE
        return envelope.meta_type == TLS_SECRET_TYPE

    return TLS_SECRET_TYPE in (envelope.new_type, envelope.object_type)


class TLSSecretPredicate:
    """Per-event-kind admission rules for Secret notifications."""

    def create(self, payload: Payload) -> bool:
        return is_tls_type(payload)

    def update(self, payload: Payload) -> bool:
        return is_tls_type(payload)

    def delete(self, payload: Payload) -> bool:
        # Always admitted so finalizer cleanup runs even without type information.
        return True

    def admit(self, kind: str, payload: Payload) -> bool:
        """Dispatch on event kind; unknown kinds are classified like creates."""
        if kind == EVENT_DELETE:
            return self.delete(payload)
        if kind == EVENT_UPDATE:
            return self.update(payload)
        return self.create(payload)


def envelope_from_raw_event(event: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    """Translate a kopf raw watch event into an event kind and envelope.

    Initial listings (type ``None``) and ``ADDED`` count as creates,
    ``MODIFIED`` as updates and ``DELETED`` as deletes.
    """
    body = event.get("object") or {}
    event_type = event.get("type")
    if event_type == "DELETED":
        return EVENT_DELETE, {"Object": body}
    if event_type == "MODIFIED":
        return EVENT_UPDATE, {"ObjectNew": body}
    return EVENT_CREATE, {"Object": body}


_predicate = TLSSecretPredicate()


def admit_secret_event(event: Mapping[str, Any], **_: Any) -> bool:
    """kopf ``when=`` filter for Secret watch events."""
    kind, envelope = envelope_from_raw_event(event)
    admitted = _predicate.admit(kind, envelope)
    metrics.events_filtered_total.labels(
        event_type=kind,
        decision="admitted" if admitted else "dropped",
    ).inc()
    return admitted
