"""Main entry point for the Tyk Secret Certificate Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from . import tracing
from .builders.certificate_store import create_certificate_store
from .classifier import admit_secret_event
from .config import OperatorConfig
from .constants import SECRET_GROUP, SECRET_PLURAL, SECRET_VERSION
from .handlers.secret_cert import SecretCertReconciler
from .models import SecretRef
from .scheduling import ReconcileDriver
from .services.kubernetes.store import KubernetesResourceStore

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure the operator and wire the reconciler."""
    config = OperatorConfig.from_env()

    structured_logging.setup_structured_logging(config.log_level)
    tracing.initialize_tracing()

    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.max_workers
    # Watches are re-established after this many seconds; the re-list acts as the periodic resync.
    settings.watching.server_timeout = config.resync_interval
    settings.watching.client_timeout = config.resync_interval + 60

    certificate_store = create_certificate_store(config)
    reconciler = SecretCertReconciler(
        store=KubernetesResourceStore(),
        certificate_store=certificate_store,
        config=config,
    )

    memo.config = config
    memo.certificate_store = certificate_store
    memo.driver = ReconcileDriver(reconciler, config.retry)

    # Metrics, /healthz and /readyz
    memo.server = health.start_server(config.metrics_port)
    health.mark_ready()

    scope = "cluster-wide" if config.clusterwide else ", ".join(config.namespaces)
    logger.info(f"Operator started in Tyk {config.tyk.mode} mode watching {scope}")


@kopf.on.cleanup()
def shutdown(memo: kopf.Memo, **_: Any) -> None:
    """Release the Tyk client and stop the metrics server."""
    health.mark_not_ready()
    certificate_store = memo.get("certificate_store")
    if certificate_store is not None:
        certificate_store.close()
    server = memo.get("server")
    if server is not None:
        server.shutdown()


@kopf.on.event(SECRET_GROUP, SECRET_VERSION, SECRET_PLURAL, when=admit_secret_event)
async def handle_secret_event(
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **_: Any,
) -> None:
    """Reconcile a TLS Secret after a watch event."""
    await memo.driver.drive(SecretRef(namespace=namespace, name=name))


def main() -> None:
    """Run the operator with the namespaces from WATCH_NAMESPACE."""
    config = OperatorConfig.from_env()
    structured_logging.setup_structured_logging(config.log_level)
    if config.clusterwide:
        kopf.run(clusterwide=True)
    else:
        kopf.run(namespaces=list(config.namespaces))


if __name__ == "__main__":
    main()
