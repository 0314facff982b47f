"""Models for Secrets, ApiDefinitions and reconcile outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from .constants import FINALIZER, TLS_SECRET_TYPE
from .utils.secrets import decode_secret_data

# Reference surfaces of an ApiDefinition spec and the outputs they feed
SURFACE_UPSTREAM_CERTIFICATES = "upstream_certificate_refs"
SURFACE_PINNED_PUBLIC_KEYS = "pinned_public_keys_refs"
SURFACE_CERTIFICATE_SECRET_NAMES = "certificate_secret_names"

OUTPUT_FIELDS = {
    SURFACE_UPSTREAM_CERTIFICATES: "upstream_certificates",
    SURFACE_PINNED_PUBLIC_KEYS: "pinned_public_keys",
    SURFACE_CERTIFICATE_SECRET_NAMES: "certificates",
}


@dataclass(frozen=True)
class SecretRef:
    """Namespaced reference to a Secret."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconcile pass."""

    requeue: bool = False
    requeue_after: float | None = None

    @property
    def done(self) -> bool:
        return not self.requeue and self.requeue_after is None


class Secret:
    """A Kubernetes Secret body with finalizer helpers.

    Only ``metadata.finalizers`` is ever changed through this wrapper; the
    secret data is read-only.
    """

    def __init__(self, body: dict[str, Any]):
        self.body = body
        self._data: dict[str, bytes] | None = None

    @property
    def metadata(self) -> dict[str, Any]:
        return self.body.setdefault("metadata", {})

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "default")

    @property
    def ref(self) -> SecretRef:
        return SecretRef(self.namespace, self.name)

    @property
    def uid(self) -> str:
        return self.metadata.get("uid", "unknown")

    @property
    def type(self) -> str:
        return self.body.get("type") or ""

    @property
    def is_tls(self) -> bool:
        return self.type == TLS_SECRET_TYPE

    @property
    def deletion_timestamp(self) -> str | None:
        return self.metadata.get("deletionTimestamp")

    @property
    def is_being_deleted(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def resource_version(self) -> str | None:
        return self.metadata.get("resourceVersion")

    @property
    def data(self) -> dict[str, bytes]:
        if self._data is None:
            self._data = decode_secret_data(self.body.get("data"))
        return self._data

    @property
    def finalizers(self) -> list[str]:
        return list(self.metadata.get("finalizers") or [])

    def has_finalizer(self, finalizer: str = FINALIZER) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str = FINALIZER) -> bool:
        """Add ``finalizer``; return True if the body changed."""
        finalizers = self.finalizers
        if finalizer in finalizers:
            return False
        finalizers.append(finalizer)
        self.metadata["finalizers"] = finalizers
        return True

    def remove_finalizer(self, finalizer: str = FINALIZER) -> bool:
        """Remove ``finalizer``; return True if the body changed."""
        finalizers = self.finalizers
        if finalizer not in finalizers:
            return False
        self.metadata["finalizers"] = [f for f in finalizers if f != finalizer]
        return True

    def __repr__(self) -> str:
        return f"Secret({self.ref}, type={self.type!r})"


@dataclass(frozen=True)
class CertificateMatch:
    """A place in an ApiDefinition where a secret name is referenced."""

    surface: str
    domain: str | None = None

    @property
    def output_field(self) -> str:
        return OUTPUT_FIELDS[self.surface]

    def current_value(self, api_def: ApiDefinition) -> Any:
        output = api_def.spec.get(self.output_field)
        if self.domain is None:
            return output
        return (output or {}).get(self.domain)

    def is_applied(self, api_def: ApiDefinition, cert_id: str) -> bool:
        """Return True if the paired output already holds ``cert_id``."""
        if self.domain is None:
            return self.current_value(api_def) == [cert_id]
        return self.current_value(api_def) == cert_id

    def apply(self, api_def: ApiDefinition, cert_id: str) -> None:
        """Write ``cert_id`` into the paired output field."""
        if self.domain is None:
            # Single slot: the whole list is replaced, the last secret written wins.
            api_def.spec[self.output_field] = [cert_id]
            return
        output = api_def.spec.get(self.output_field)
        if output is None:
            output = {}
            api_def.spec[self.output_field] = output
        output[self.domain] = cert_id

    def describe(self) -> str:
        if self.domain is None:
            return self.surface
        return f"{self.surface}[{self.domain}]"


class ApiDefinition:
    """A Tyk ApiDefinition custom object body."""

    def __init__(self, body: dict[str, Any]):
        self.body = body

    @property
    def metadata(self) -> dict[str, Any]:
        return self.body.setdefault("metadata", {})

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "default")

    @property
    def resource_version(self) -> str | None:
        return self.metadata.get("resourceVersion")

    @property
    def spec(self) -> dict[str, Any]:
        spec = self.body.get("spec")
        if spec is None:
            spec = {}
            self.body["spec"] = spec
        return spec

    @property
    def api_id(self) -> str | None:
        return self.spec.get("api_id")

    def matches(self, secret_name: str) -> Iterator[CertificateMatch]:
        """Yield every reference to ``secret_name`` across the three surfaces.

        Upstream certificates come first, then pinned public keys, then the
        server certificate list, each map in its own key order.
        """
        for surface in (SURFACE_UPSTREAM_CERTIFICATES, SURFACE_PINNED_PUBLIC_KEYS):
            refs = self.spec.get(surface) or {}
            for domain, name in list(refs.items()):
                if name == secret_name:
                    yield CertificateMatch(surface, domain)

        if secret_name in (self.spec.get(SURFACE_CERTIFICATE_SECRET_NAMES) or []):
            yield CertificateMatch(SURFACE_CERTIFICATE_SECRET_NAMES)

    def __repr__(self) -> str:
        return f"ApiDefinition({self.namespace}/{self.name})"
