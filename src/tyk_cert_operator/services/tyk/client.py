"""Tyk certificate store client."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ... import metrics
from ...config import TykEnvironment
from ...utils.certs import certificate_id
from ...utils.rate_limit import rate_limit_tyk
from .exceptions import (
    TykAPIError,
    TykAuthError,
    TykConnectionError,
    TykNotFoundError,
)

logger = logging.getLogger(__name__)

# Gateway (CE) endpoints
GATEWAY_CERTS_PATH = "/tyk/certs"
GATEWAY_RELOAD_PATH = "/tyk/reload/group"

# Dashboard (Pro) endpoints
DASHBOARD_CERTS_PATH = "/api/certs"


class TykCertificateClient:
    """HTTP client for the Tyk certificate store.

    Talks to the Gateway API in CE mode and to the Dashboard API in Pro mode.
    Every call receives the resolved ``TykEnvironment`` so the same client
    instance can serve any organization.

    Example:
        ```python
        with TykCertificateClient() as client:
            cert_id = client.upload(env, key_pem, cert_pem)
            client.hot_reload(env)
        ```
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Tyk client.

        Args:
            timeout: Request timeout in seconds
            verify: Verify TLS certificates of the Tyk endpoint
            transport: Optional httpx transport (used in tests)
        """
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            verify=verify,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> TykCertificateClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    @staticmethod
    def _auth_headers(env: TykEnvironment) -> dict[str, str]:
        if env.is_pro:
            return {"authorization": env.auth}
        return {"x-tyk-authorization": env.auth}

    @rate_limit_tyk
    def _request(
        self,
        env: TykEnvironment,
        method: str,
        path: str,
        operation: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Make an HTTP request to the Tyk API.

        Args:
            env: Tyk environment to talk to
            method: HTTP method
            path: API path, joined to ``env.url``
            operation: Operation name for metrics
            **kwargs: Additional arguments for httpx

        Returns:
            Response JSON data

        Raises:
            TykConnectionError: On connection failure or timeout
            TykAuthError: On 401/403 responses
            TykNotFoundError: On 404 responses
            TykAPIError: On other API errors
        """
        headers = {**self._auth_headers(env), **kwargs.pop("headers", {})}
        url = f"{env.url}{path}"

        start_time = time.time()
        try:
            response = self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            metrics.api_call_total.labels(api_type="tyk", operation=operation, result="error").inc()
            logger.error(f"Tyk request timed out: {method} {path}")
            raise TykConnectionError("Request to Tyk API timed out", details=str(e)) from e
        except httpx.TransportError as e:
            metrics.api_call_total.labels(api_type="tyk", operation=operation, result="error").inc()
            logger.error(f"Tyk connection error: {method} {path}: {e}")
            raise TykConnectionError(f"Failed to connect to Tyk API: {e}", details=str(e)) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="tyk", operation=operation).observe(duration)

        if response.status_code >= 400:
            metrics.api_call_total.labels(api_type="tyk", operation=operation, result="error").inc()
            message = _error_message(response)
            if response.status_code in (401, 403):
                raise TykAuthError(
                    f"Tyk API rejected request: {message}",
                    status_code=response.status_code,
                    details=response.text,
                )
            if response.status_code == 404:
                raise TykNotFoundError(
                    f"Tyk resource not found: {message}",
                    status_code=404,
                    details=response.text,
                )
            raise TykAPIError(
                f"Tyk API error: {message}",
                status_code=response.status_code,
                details=response.text,
            )

        metrics.api_call_total.labels(api_type="tyk", operation=operation, result="success").inc()
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()  # type: ignore[no-any-return]
        except ValueError:
            return {}

    def upload(self, env: TykEnvironment, key: bytes, crt: bytes) -> str:
        """Upload a key and certificate and return the Tyk certificate ID.

        Uploading material that Tyk already stores returns the existing ID.

        Args:
            env: Tyk environment
            key: Private key PEM bytes
            crt: Certificate PEM bytes

        Returns:
            Certificate ID

        Raises:
            TykError: If the upload fails
        """
        combined = key + crt
        try:
            if env.is_pro:
                data = self._request(
                    env,
                    "POST",
                    DASHBOARD_CERTS_PATH,
                    "upload_certificate",
                    files={"cert": ("cert.pem", combined, "application/octet-stream")},
                )
            else:
                data = self._request(
                    env,
                    "POST",
                    GATEWAY_CERTS_PATH,
                    "upload_certificate",
                    params={"org_id": env.org},
                    content=combined,
                    headers={"Content-Type": "application/octet-stream"},
                )
        except TykAPIError as e:
            if e.status_code in (403, 409) and "already exists" in (e.details or e.message).lower():
                cert_id = certificate_id(env.org, crt)
                logger.info(f"Certificate {cert_id} already present in Tyk")
                return cert_id
            raise

        cert_id = data.get("id")
        if not cert_id:
            raise TykAPIError("Tyk API did not return a certificate ID", details=str(data))
        return str(cert_id)

    def delete(self, env: TykEnvironment, cert_id: str) -> None:
        """Delete a certificate by ID; an already-absent certificate is not an error.

        Raises:
            TykError: If the deletion fails
        """
        if env.is_pro:
            path, params = f"{DASHBOARD_CERTS_PATH}/{cert_id}", None
        else:
            path, params = f"{GATEWAY_CERTS_PATH}/{cert_id}", {"org_id": env.org}
        try:
            self._request(env, "DELETE", path, "delete_certificate", params=params)
        except TykNotFoundError:
            logger.info(f"Certificate {cert_id} was already absent from Tyk")

    def hot_reload(self, env: TykEnvironment) -> None:
        """Trigger a group hot reload of the gateways.

        The Dashboard propagates certificate changes itself, so this is a no-op
        in Pro mode.

        Raises:
            TykError: If the reload request fails
        """
        if env.is_pro:
            logger.debug("Skipping hot reload in Pro mode")
            return
        self._request(env, "GET", GATEWAY_RELOAD_PATH, "hot_reload")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("message") or data.get("Message") or response.text)
    return response.text
