"""Operator configuration loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .constants import TYK_MODE_CE, TYK_MODE_PRO
from .utils.errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class TykEnvironment:
    """Connection settings for the Tyk Gateway or Dashboard."""

    mode: str = TYK_MODE_CE
    url: str = ""
    auth: str = field(default="", repr=False)
    org: str = ""
    insecure_skip_verify: bool = False
    request_timeout: float = 30.0

    @property
    def is_pro(self) -> bool:
        return self.mode == TYK_MODE_PRO


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff applied by the reconcile driver between attempts."""

    max_attempts: int = 6
    min_delay: float = 1.0
    max_delay: float = 60.0
    backoff: float = 2.0
    jitter: float = 0.1

    def delay_for(self, attempt: int) -> float:
        """Return the un-jittered delay before retry number ``attempt`` (0-based)."""
        return min(self.max_delay, self.min_delay * (self.backoff ** attempt))


@dataclass(frozen=True)
class OperatorConfig:
    """Top-level operator configuration."""

    tyk: TykEnvironment = field(default_factory=TykEnvironment)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    namespaces: tuple[str, ...] = ()
    metrics_port: int = 8080
    resync_interval: float = 600.0
    max_workers: int = 4
    log_level: str = "INFO"

    @property
    def clusterwide(self) -> bool:
        return not self.namespaces

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Populated configuration

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        mode = env.get("TYK_MODE", TYK_MODE_CE).strip().lower()
        if mode not in (TYK_MODE_CE, TYK_MODE_PRO):
            raise ConfigurationError(f"TYK_MODE must be '{TYK_MODE_CE}' or '{TYK_MODE_PRO}', got '{mode}'")

        tyk = TykEnvironment(
            mode=mode,
            url=env.get("TYK_URL", "").strip().rstrip("/"),
            auth=env.get("TYK_AUTH", "").strip(),
            org=env.get("TYK_ORG", "").strip(),
            insecure_skip_verify=_parse_bool(env, "TYK_TLS_INSECURE_SKIP_VERIFY", False),
            request_timeout=_parse_float(env, "TYK_REQUEST_TIMEOUT_SECONDS", 30.0),
        )

        retry = RetryPolicy(
            max_attempts=_parse_int(env, "RECONCILE_MAX_ATTEMPTS", 6),
            min_delay=_parse_float(env, "RECONCILE_MIN_RETRY_DELAY", 1.0),
            max_delay=_parse_float(env, "RECONCILE_MAX_RETRY_DELAY", 60.0),
            backoff=_parse_float(env, "RECONCILE_RETRY_BACKOFF", 2.0),
            jitter=_parse_float(env, "RECONCILE_BACKOFF_JITTER", 0.1),
        )
        if retry.max_attempts < 1:
            raise ConfigurationError("RECONCILE_MAX_ATTEMPTS must be at least 1")

        return cls(
            tyk=tyk,
            retry=retry,
            namespaces=parse_namespaces(env.get("WATCH_NAMESPACE", "")),
            metrics_port=_parse_int(env, "METRICS_PORT", 8080),
            resync_interval=_parse_float(env, "RESYNC_INTERVAL_SECONDS", 600.0),
            max_workers=_parse_int(env, "MAX_WORKERS", 4),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


def parse_namespaces(value: str) -> tuple[str, ...]:
    """Split a comma-separated namespace list, dropping blanks and duplicates."""
    namespaces: list[str] = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in namespaces:
            namespaces.append(item)
    return tuple(namespaces)


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{raw}'")


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from e


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from e
