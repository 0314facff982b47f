"""Per-pass correlation IDs and ambient Tyk context resolution."""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

from .errors import ContextResolutionError

if TYPE_CHECKING:
    from ..config import OperatorConfig, TykEnvironment

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def new_correlation_id() -> str:
    """Generate a fresh correlation ID."""
    return uuid.uuid4().hex[:16]


def set_correlation_id(corr_id: str) -> None:
    """Set the correlation ID in the current context."""
    correlation_id.set(corr_id)


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


@contextmanager
def with_correlation_id(corr_id: str | None = None) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.

    Args:
        corr_id: Correlation ID to use, generated when omitted

    Yields:
        The correlation ID
    """
    corr_id = corr_id or new_correlation_id()
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.

    Args:
        additional: Additional key-value pairs to include

    Returns:
        Dictionary with context values including correlation_id
    """
    ctx: dict[str, Any] = {}

    corr_id = get_correlation_id()
    if corr_id:
        ctx["correlation_id"] = corr_id

    if additional:
        ctx.update(additional)

    return ctx


@dataclass(frozen=True)
class OperatorContext:
    """Organization scope and Tyk environment for one reconcile pass."""

    org: str
    env: TykEnvironment


def resolve_context(obj: Any, config: OperatorConfig) -> OperatorContext:
    """Resolve the organization and Tyk environment for a resource.

    Secrets carry no context reference of their own, so every secret resolves
    to the operator-wide Tyk environment.

    Args:
        obj: Resource being reconciled (used for error reporting)
        config: Operator configuration

    Returns:
        Resolved context

    Raises:
        ContextResolutionError: If the environment is incomplete
    """
    env = config.tyk
    missing = [
        name
        for name, value in (("TYK_URL", env.url), ("TYK_AUTH", env.auth), ("TYK_ORG", env.org))
        if not value
    ]
    if missing:
        ref = getattr(obj, "ref", obj)
        raise ContextResolutionError(
            f"cannot resolve Tyk context for {ref}: missing {', '.join(missing)}"
        )
    return OperatorContext(org=env.org, env=env)
