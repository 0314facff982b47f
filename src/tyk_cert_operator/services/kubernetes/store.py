"""Kubernetes reads and writes for Secrets and ApiDefinitions."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from ... import metrics
from ...constants import (
    API_GROUP,
    API_VERSION,
    FIELD_MANAGER,
    KIND_SECRET,
    PLURAL_API_DEFINITION,
    SECRET_VERSION,
)
from ...models import ApiDefinition, Secret, SecretRef
from ...utils.errors import ConflictError, NotFoundError
from ...utils.rate_limit import rate_limit_k8s

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def load_kubernetes_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class KubernetesResourceStore:
    """Resource store backed by the Kubernetes API.

    Writes are full ``replace`` calls carrying the resourceVersion that was
    read, so a concurrent writer makes the update fail with ``ConflictError``.
    """

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        custom_api: client.CustomObjectsApi | None = None,
    ) -> None:
        if core_api is None or custom_api is None:
            load_kubernetes_config()
        self.core_api = core_api or client.CoreV1Api()
        self.custom_api = custom_api or client.CustomObjectsApi()

    @rate_limit_k8s
    def _call(self, operation: str, what: str, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        """Invoke a Kubernetes API call, recording metrics and translating errors."""
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except ApiException as e:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            if e.status == 404:
                raise NotFoundError(f"{what} not found", details=e.reason) from e
            if e.status == 409:
                raise ConflictError(f"{what} was modified concurrently", details=e.reason) from e
            raise
        finally:
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(
                time.time() - start_time
            )
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
        return result

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.core_api.api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]

    def get_secret(self, ref: SecretRef) -> Secret:
        """Fetch a Secret.

        Raises:
            NotFoundError: If the Secret does not exist
        """
        obj = self._call(
            "get_secret",
            f"Secret {ref}",
            self.core_api.read_namespaced_secret,
            ref.name,
            ref.namespace,
        )
        body = self._to_dict(obj)
        body.setdefault("apiVersion", SECRET_VERSION)
        body.setdefault("kind", KIND_SECRET)
        return Secret(body)

    def update_secret(self, secret: Secret) -> Secret:
        """Replace a Secret and return the stored version.

        Raises:
            NotFoundError: If the Secret vanished
            ConflictError: If the Secret changed since it was read
        """
        obj = self._call(
            "update_secret",
            f"Secret {secret.ref}",
            self.core_api.replace_namespaced_secret,
            secret.name,
            secret.namespace,
            secret.body,
            field_manager=FIELD_MANAGER,
        )
        logger.debug(f"Updated Secret {secret.ref}")
        return Secret(self._to_dict(obj))

    def list_api_definitions(self, namespace: str) -> list[ApiDefinition]:
        """List ApiDefinitions in a namespace."""
        result = self._call(
            "list_api_definitions",
            f"ApiDefinitions in {namespace}",
            self.custom_api.list_namespaced_custom_object,
            API_GROUP,
            API_VERSION,
            namespace,
            PLURAL_API_DEFINITION,
        )
        return [ApiDefinition(item) for item in result.get("items", [])]

    def update_api_definition(self, api_def: ApiDefinition) -> ApiDefinition:
        """Replace an ApiDefinition and return the stored version.

        Raises:
            NotFoundError: If the ApiDefinition vanished
            ConflictError: If the ApiDefinition changed since it was read
        """
        result = self._call(
            "update_api_definition",
            f"ApiDefinition {api_def.namespace}/{api_def.name}",
            self.custom_api.replace_namespaced_custom_object,
            API_GROUP,
            API_VERSION,
            api_def.namespace,
            PLURAL_API_DEFINITION,
            api_def.name,
            api_def.body,
            field_manager=FIELD_MANAGER,
        )
        logger.debug(f"Updated ApiDefinition {api_def.namespace}/{api_def.name}")
        return ApiDefinition(result)
