"""Tests for the certificate store builder."""

from __future__ import annotations

from unittest.mock import patch

from tyk_cert_operator.builders.certificate_store import create_certificate_store
from tyk_cert_operator.config import OperatorConfig, TykEnvironment


class TestCreateCertificateStore:
    """Test cases for create_certificate_store function."""

    @patch("tyk_cert_operator.builders.certificate_store.TykCertificateClient")
    def test_uses_configured_timeout_and_verification(self, mock_client):
        config = OperatorConfig(tyk=TykEnvironment(request_timeout=12.0))

        create_certificate_store(config)

        mock_client.assert_called_once_with(timeout=12.0, verify=True)

    @patch("tyk_cert_operator.builders.certificate_store.TykCertificateClient")
    def test_insecure_skip_verify(self, mock_client, caplog):
        config = OperatorConfig(tyk=TykEnvironment(insecure_skip_verify=True))

        create_certificate_store(config)

        mock_client.assert_called_once_with(timeout=30.0, verify=False)
        assert "TLS verification towards Tyk is disabled" in caplog.text
