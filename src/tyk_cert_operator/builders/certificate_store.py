"""Builder for Tyk certificate store clients."""

from __future__ import annotations

import logging

from ..config import OperatorConfig
from ..services.tyk.client import TykCertificateClient

logger = logging.getLogger(__name__)


def create_certificate_store(config: OperatorConfig) -> TykCertificateClient:
    """Create a Tyk certificate client from operator configuration.

    Args:
        config: Operator configuration

    Returns:
        Configured certificate client
    """
    tyk = config.tyk
    if tyk.insecure_skip_verify:
        logger.warning("TLS verification towards Tyk is disabled")
    return TykCertificateClient(
        timeout=tyk.request_timeout,
        verify=not tyk.insecure_skip_verify,
    )
