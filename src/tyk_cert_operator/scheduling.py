"""Drives reconcile passes for one Secret with requeue and backoff."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Protocol

import kopf

from . import metrics
from .config import RetryPolicy
from .models import ReconcileResult, SecretRef
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)


class Reconciler(Protocol):
    def reconcile(self, ref: SecretRef) -> ReconcileResult:
        ...


class ReconcileDriver:
    """Runs reconcile passes until one succeeds or the retry budget is spent.

    Passes run in a worker thread so a slow Tyk or Kubernetes call for one
    Secret does not hold up the event loop. kopf already serialises events per
    object, which keeps passes for the same Secret from overlapping.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        policy: RetryPolicy,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.reconciler = reconciler
        self.policy = policy
        self.sleep = sleep

    def _backoff(self, attempt: int) -> float:
        delay = self.policy.delay_for(attempt)
        if self.policy.jitter:
            delay *= 1 + random.uniform(-self.policy.jitter, self.policy.jitter)
        return max(0.0, delay)

    async def drive(self, ref: SecretRef) -> bool:
        """Reconcile ``ref``, retrying failed or requeued passes.

        Args:
            ref: Secret reference

        Returns:
            True if a pass completed, False if all attempts were used up
        """
        for attempt in range(self.policy.max_attempts):
            try:
                result = await asyncio.to_thread(self.reconciler.reconcile, ref)
            except kopf.TemporaryError as e:
                reason = "temporary"
                delay = e.delay if e.delay is not None else self._backoff(attempt)
                logger.warning(f"Reconcile of Secret {ref} failed temporarily: {sanitize_exception(e)}")
            except Exception as e:
                reason = type(e).__name__
                delay = self._backoff(attempt)
                logger.warning(f"Reconcile of Secret {ref} failed: {sanitize_exception(e)}")
            else:
                if result.done:
                    return True
                reason = "requeue"
                delay = result.requeue_after if result.requeue_after is not None else self._backoff(attempt)

            if attempt + 1 >= self.policy.max_attempts:
                break
            metrics.reconcile_retries_total.labels(reason=reason).inc()
            logger.info(f"Retrying Secret {ref} in {delay:.1f}s (attempt {attempt + 2}/{self.policy.max_attempts})")
            await self.sleep(delay)

        logger.error(f"Giving up on Secret {ref} after {self.policy.max_attempts} attempts")
        return False
