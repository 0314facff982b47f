"""Interfaces of the collaborators used by the reconciler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..config import TykEnvironment
    from ..models import ApiDefinition, Secret, SecretRef


class CertificateStore(Protocol):
    """Protocol defining remote certificate store operations."""

    def upload(self, env: TykEnvironment, key: bytes, crt: bytes) -> str:
        """Upload key and certificate PEM bytes and return the certificate ID."""
        ...

    def delete(self, env: TykEnvironment, cert_id: str) -> None:
        """Delete a certificate by ID."""
        ...

    def hot_reload(self, env: TykEnvironment) -> None:
        """Ask the gateways to refresh their in-memory certificate set."""
        ...


class ResourceStore(Protocol):
    """Protocol defining the Kubernetes reads and writes the reconciler needs.

    ``get_secret`` and the update methods raise ``NotFoundError``; the update
    methods also raise ``ConflictError`` on a stale resourceVersion.
    """

    def get_secret(self, ref: SecretRef) -> Secret:
        """Fetch a Secret."""
        ...

    def update_secret(self, secret: Secret) -> Secret:
        """Replace a Secret and return the stored version."""
        ...

    def list_api_definitions(self, namespace: str) -> list[ApiDefinition]:
        """List ApiDefinitions in a namespace."""
        ...

    def update_api_definition(self, api_def: ApiDefinition) -> ApiDefinition:
        """Replace an ApiDefinition and return the stored version."""
        ...
