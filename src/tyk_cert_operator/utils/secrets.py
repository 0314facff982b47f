"""Utilities for reading Kubernetes secret data."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from ..constants import TLS_CRT, TLS_KEY


def decode_secret_data(data: dict[str, Any] | None) -> dict[str, bytes]:
    """Decode the ``data`` section of a Secret body.

    Values coming from the API server are base64 strings; values already
    decoded (bytes) are kept as they are.

    Args:
        data: Raw ``data`` mapping of a Secret

    Returns:
        Dictionary of decoded values
    """
    result: dict[str, bytes] = {}
    for key, value in (data or {}).items():
        if value is None:
            continue
        if isinstance(value, bytes):
            result[key] = value
            continue
        try:
            result[key] = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            result[key] = value.encode("utf-8")
    return result


def get_tls_material(data: dict[str, bytes]) -> tuple[bytes, bytes] | None:
    """Return ``(tls.key, tls.crt)`` when both are present.

    Args:
        data: Decoded secret data

    Returns:
        Key and certificate bytes, or None if either is missing
    """
    tls_key = data.get(TLS_KEY)
    tls_crt = data.get(TLS_CRT)
    if tls_key is None or tls_crt is None:
        return None
    return tls_key, tls_crt
