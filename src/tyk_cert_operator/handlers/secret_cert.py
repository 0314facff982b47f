"""Reconciliation of kubernetes.io/tls Secrets into Tyk ApiDefinitions."""

from __future__ import annotations

import logging

import kopf

from .. import metrics
from ..config import OperatorConfig
from ..constants import DELETE_RETRY_DELAY_SECONDS, KIND_SECRET, TLS_CRT
from ..models import ApiDefinition, CertificateMatch, ReconcileResult, Secret, SecretRef
from ..services.base import CertificateStore, ResourceStore
from ..services.tyk.exceptions import TykError
from ..tracing import add_span_attribute, trace_span
from ..utils.certs import certificate_id
from ..utils.context import OperatorContext, resolve_context, with_correlation_id
from ..utils.errors import CertificateUploadError, ConflictError, NotFoundError, sanitize_exception
from ..utils.events import (
    emit_api_definition_updated,
    emit_certificate_deleted,
    emit_certificate_uploaded,
    emit_reconcile_failed,
)
from ..utils.secrets import get_tls_material
from .base import BaseHandler

logger = logging.getLogger(__name__)


class SecretCertReconciler(BaseHandler):
    """Keeps Tyk certificates and ApiDefinition references in sync with TLS Secrets.

    A pass fetches the Secret, uploads its key pair to the Tyk certificate
    store at most once, and writes the returned certificate ID into every
    ApiDefinition output that references the Secret by name. When the Secret
    is being deleted the remote certificate is removed before the finalizer
    is released.
    """

    def __init__(
        self,
        store: ResourceStore,
        certificate_store: CertificateStore,
        config: OperatorConfig,
    ):
        super().__init__(KIND_SECRET)
        self.store = store
        self.certificate_store = certificate_store
        self.config = config

    def reconcile(self, ref: SecretRef) -> ReconcileResult:
        """Run one reconcile pass for the Secret at ``ref``.

        Args:
            ref: Secret reference

        Returns:
            Pass outcome

        Raises:
            ContextResolutionError: If the Tyk context cannot be resolved
            CertificateUploadError: If the certificate upload failed
            kopf.TemporaryError: If the deletion procedure failed
        """
        with with_correlation_id(), trace_span(
            "reconcile_secret",
            kind=KIND_SECRET,
            attributes={"k8s.namespace": ref.namespace, "k8s.name": ref.name},
        ):
            try:
                secret = self.store.get_secret(ref)
            except NotFoundError:
                logger.debug(f"Secret {ref} no longer exists")
                metrics.reconcile_total.labels(kind=self.kind, result="gone").inc()
                return ReconcileResult()

            return self.reconcile_with_metrics(secret.metadata, lambda: self._reconcile(secret))

    def _reconcile(self, secret: Secret) -> ReconcileResult:
        ctx = resolve_context(secret, self.config)

        if not secret.is_tls:
            logger.debug(f"Ignoring Secret {secret.ref} of type {secret.type!r}")
            return ReconcileResult()

        if secret.is_being_deleted:
            try:
                self.delete(secret, ctx)
            except Exception as e:
                message = f"Failed to release certificate of Secret {secret.ref}: {sanitize_exception(e)}"
                self.log_error(secret.metadata, message, error=e, reason="DeletionFailed")
                emit_reconcile_failed(secret.body, message)
                raise kopf.TemporaryError(message, delay=DELETE_RETRY_DELAY_SECONDS) from e
            return ReconcileResult()

        material = get_tls_material(secret.data)
        if material is None:
            self.log_info(secret.metadata, "Waiting for tls.key and tls.crt", reason="AwaitingKeys")
            return ReconcileResult()
        key, crt = material

        if secret.add_finalizer():
            try:
                secret = self.store.update_secret(secret)
            except (ConflictError, NotFoundError) as e:
                logger.info(f"Adding finalizer to Secret {secret.ref} raced: {e.message}")
                return ReconcileResult(requeue=True)
            self.log_info(secret.metadata, "Finalizer added", reason="FinalizerAdded")

        api_defs = self.store.list_api_definitions(secret.namespace)
        if not api_defs:
            return ReconcileResult()

        if self._is_converged(secret, ctx, crt, api_defs):
            logger.debug(f"ApiDefinitions referencing Secret {secret.ref} are up to date")
            return ReconcileResult()

        cert_id: str | None = None
        requeue = False
        for api_def in api_defs:
            for match in list(api_def.matches(secret.name)):
                if cert_id is None:
                    cert_id = self._upload(secret, ctx, key, crt)

                if match.is_applied(api_def, cert_id):
                    continue

                match.apply(api_def, cert_id)
                try:
                    api_def = self._update_api_definition(secret, api_def, match, cert_id)
                except (ConflictError, NotFoundError) as e:
                    metrics.api_definition_updates_total.labels(result="conflict").inc()
                    logger.info(f"Update of ApiDefinition {api_def.namespace}/{api_def.name} raced: {e.message}")
                    return ReconcileResult(requeue=True)
                except Exception as e:
                    metrics.api_definition_updates_total.labels(result="error").inc()
                    self.log_error(
                        secret.metadata,
                        f"Failed to update ApiDefinition {api_def.namespace}/{api_def.name}",
                        error=e,
                        reason="ApiDefinitionUpdateFailed",
                        api_definition=api_def.name,
                        match=match.describe(),
                    )
                    requeue = True

        return ReconcileResult(requeue=requeue)

    def _is_converged(
        self,
        secret: Secret,
        ctx: OperatorContext,
        crt: bytes,
        api_defs: list[ApiDefinition],
    ) -> bool:
        """Return True if every output referencing ``secret`` holds its certificate ID.

        The ID Tyk assigns is the organization followed by the certificate
        fingerprint, so it is known without contacting Tyk. An unparseable
        certificate is never converged and is left for the upload to reject.
        """
        try:
            expected_id = certificate_id(ctx.org, crt)
        except ValueError:
            return False
        return all(
            match.is_applied(api_def, expected_id)
            for api_def in api_defs
            for match in api_def.matches(secret.name)
        )

    def _upload(self, secret: Secret, ctx: OperatorContext, key: bytes, crt: bytes) -> str:
        with trace_span("upload_certificate", kind=KIND_SECRET):
            try:
                cert_id = self.certificate_store.upload(ctx.env, key, crt)
            except TykError as e:
                metrics.certificate_operations_total.labels(operation="upload", result="error").inc()
                message = f"Failed to upload certificate of Secret {secret.ref}: {sanitize_exception(e)}"
                emit_reconcile_failed(secret.body, message)
                raise CertificateUploadError(message, details=e.details) from e
            add_span_attribute("tyk.certificate_id", cert_id)

        metrics.certificate_operations_total.labels(operation="upload", result="success").inc()
        self.log_info(secret.metadata, "Certificate uploaded", reason="CertificateUploaded", cert_id=cert_id)
        emit_certificate_uploaded(secret.body, cert_id)
        return cert_id

    def _update_api_definition(
        self,
        secret: Secret,
        api_def: ApiDefinition,
        match: CertificateMatch,
        cert_id: str,
    ) -> ApiDefinition:
        updated = self.store.update_api_definition(api_def)
        metrics.api_definition_updates_total.labels(result="success").inc()
        self.log_info(
            secret.metadata,
            f"ApiDefinition {api_def.namespace}/{api_def.name} updated",
            reason="ApiDefinitionUpdated",
            api_definition=api_def.name,
            match=match.describe(),
            cert_id=cert_id,
        )
        emit_api_definition_updated(secret.body, api_def.name, cert_id)
        return updated

    def delete(self, secret: Secret, ctx: OperatorContext) -> None:
        """Release the remote certificate of a Secret that is being deleted.

        The finalizer is only removed after the certificate has been deleted
        from Tyk and the gateways have been reloaded. A Secret without
        ``tls.crt`` or with an unparseable certificate keeps its finalizer and
        the remote store is not contacted.

        Raises:
            TykError: If the remote deletion or the hot reload failed
            OperatorError: If the finalizer could not be removed
        """
        if not secret.has_finalizer():
            return

        crt = secret.data.get(TLS_CRT)
        if not crt:
            self.log_warning(secret.metadata, "Secret has no tls.crt, nothing to delete", reason="NoCertificate")
            return

        try:
            cert_id = certificate_id(ctx.org, crt)
        except ValueError as e:
            self.log_error(secret.metadata, "Failed to compute certificate fingerprint", error=e, reason="BadCertificate")
            return

        with trace_span("delete_certificate", kind=KIND_SECRET, attributes={"tyk.certificate_id": cert_id}):
            try:
                self.certificate_store.delete(ctx.env, cert_id)
            except Exception:
                metrics.certificate_operations_total.labels(operation="delete", result="error").inc()
                raise
            metrics.certificate_operations_total.labels(operation="delete", result="success").inc()

        with trace_span("hot_reload", kind=KIND_SECRET):
            self.certificate_store.hot_reload(ctx.env)

        self.log_info(secret.metadata, "Certificate deleted from Tyk", reason="CertificateDeleted", cert_id=cert_id)
        emit_certificate_deleted(secret.body, cert_id)

        if secret.remove_finalizer():
            self.store.update_secret(secret)
            self.log_info(secret.metadata, "Finalizer removed", reason="FinalizerRemoved")
