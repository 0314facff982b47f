"""Rate limiting utilities for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_TYK_RATE_LIMIT_PER_SECOND = float(os.getenv("TYK_RATE_LIMIT_PER_SECOND", "5.0"))

# Track last call times
_k8s_last_call_time: float = 0.0
_tyk_last_call_time: float = 0.0
_k8s_lock = threading.Lock()
_tyk_lock = threading.Lock()


def _wait_for_slot(last_call_time: float, rate_per_second: float) -> float:
    """Sleep until the minimum interval has passed and return the new call time."""
    min_interval = 1.0 / rate_per_second
    time_since_last_call = time.time() - last_call_time
    if time_since_last_call < min_interval:
        time.sleep(min_interval - time_since_last_call)
    return time.time()


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Enforces a minimum interval between calls across all worker threads so
    reconciliations cannot overwhelm the Kubernetes API server.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _k8s_last_call_time
        with _k8s_lock:
            _k8s_last_call_time = _wait_for_slot(_k8s_last_call_time, _K8S_RATE_LIMIT_PER_SECOND)
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_tyk(func: _F) -> _F:
    """Decorator to rate limit Tyk Gateway / Dashboard API calls."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _tyk_last_call_time
        with _tyk_lock:
            _tyk_last_call_time = _wait_for_slot(_tyk_last_call_time, _TYK_RATE_LIMIT_PER_SECOND)
        return func(*args, **kwargs)

    return wrapper  # type: ignore
