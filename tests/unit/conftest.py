"""Shared fixtures for the unit tests."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from factories import FakeResourceStore, TLSPair, make_tls_pair
from tyk_cert_operator.config import OperatorConfig, RetryPolicy, TykEnvironment


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """Kubernetes events need a running operator; record them instead."""
    with patch("tyk_cert_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture(autouse=True)
def fast_rate_limits():
    with patch("tyk_cert_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1_000_000.0), patch(
        "tyk_cert_operator.utils.rate_limit._TYK_RATE_LIMIT_PER_SECOND", 1_000_000.0
    ):
        yield


@pytest.fixture(scope="session")
def tls_pair() -> TLSPair:
    return make_tls_pair()


@pytest.fixture(scope="session")
def other_tls_pair() -> TLSPair:
    return make_tls_pair("other.example.com")


@pytest.fixture
def tyk_env() -> TykEnvironment:
    return TykEnvironment(mode="ce", url="http://tyk.local:8080", auth="s3cr3t", org="org1")


@pytest.fixture
def operator_config(tyk_env: TykEnvironment) -> OperatorConfig:
    return OperatorConfig(tyk=tyk_env, retry=RetryPolicy(max_attempts=3, jitter=0.0))


@pytest.fixture
def store() -> FakeResourceStore:
    return FakeResourceStore()


@pytest.fixture
def certificate_store() -> MagicMock:
    cert_store = MagicMock()
    cert_store.upload.return_value = "org1cert"
    return cert_store
