"""Health check and metrics endpoints for the operator."""

from __future__ import annotations

import threading
from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.serving import make_server
from werkzeug.wrappers import Response

_ready = threading.Event()


def mark_ready() -> None:
    """Report the operator as ready to reconcile."""
    _ready.set()


def mark_not_ready() -> None:
    """Report the operator as not ready (startup or shutdown)."""
    _ready.clear()


def is_ready() -> bool:
    return _ready.is_set()


def create_combined_wsgi_app(ready_check: Callable[[], bool] = is_ready) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Args:
        ready_check: Callable reporting readiness for ``/readyz``

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        """WSGI app that routes /healthz and /readyz, delegates /metrics to prometheus."""
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        elif path == "/readyz":
            if ready_check():
                response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            else:
                response = Response('{"status":"not ready"}', mimetype="application/json", status=503)
            return response(environ, start_response)
        else:
            return metrics_app(environ, start_response)

    return combined_app


def start_server(port: int) -> Any:
    """Serve the combined app on ``port`` from a daemon thread.

    Returns:
        The running werkzeug server (call ``shutdown()`` to stop it)
    """
    server = make_server("", port, create_combined_wsgi_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
