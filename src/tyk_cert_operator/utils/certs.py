"""Certificate fingerprinting."""

from __future__ import annotations

from cryptography import x509
from cryptography.hazmat.primitives import hashes


def calculate_fingerprint(cert_pem: bytes) -> str:
    """Calculate the SHA-256 fingerprint of the first certificate in a PEM bundle.

    The fingerprint is the lowercase hex digest of the DER encoding, which is
    what Tyk appends to the organization ID to name a stored certificate.

    Raises:
        ValueError: If no certificate can be parsed from ``cert_pem``
    """
    cert = x509.load_pem_x509_certificate(cert_pem)
    return cert.fingerprint(hashes.SHA256()).hex()


def certificate_id(org_id: str, cert_pem: bytes) -> str:
    """Return the Tyk certificate ID for ``cert_pem`` within ``org_id``."""
    return org_id + calculate_fingerprint(cert_pem)
