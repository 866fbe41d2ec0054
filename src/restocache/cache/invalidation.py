"""Invalidation sweeps over derived cache keys.

A mutation derives several thousand candidate keys (see
``restocache.cache.keys``). The orchestrator deletes them in pipelined
batches with a cap on the number of batches in flight, so a sweep never
opens more than ``max_in_flight`` concurrent requests against Redis.

Outcomes are collected per key. Deleted and absent keys both count as
success; failed keys are logged and reported but never raised, since the
store write that triggered the sweep has already succeeded.

Example:
    orchestrator = InvalidationOrchestrator(cache)
    report = await orchestrator.invalidate(derive_invalidation_keys(name, region, cuisine))

    # On shutdown, wait for sweeps still running in the background
    await orchestrator.drain()
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from restocache.config import settings
from restocache.core.gateways import CacheGateway, CacheResult, CacheStatus
from restocache.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


class InvalidationMode(str, Enum):
    """When the caller gets control back relative to the sweep."""

    # Wait for the sweep, up to wait_timeout; the rest runs in the background
    SYNC = "sync"
    # Schedule the sweep and return immediately
    BACKGROUND = "background"


@dataclass
class InvalidationReport:
    """Aggregated outcome of one sweep."""

    total: int
    deleted: int = 0
    absent: int = 0
    failed: list[CacheResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed

    def record(self, result: CacheResult) -> None:
        if result.status is CacheStatus.DELETED:
            self.deleted += 1
        elif result.status is CacheStatus.ABSENT:
            self.absent += 1
        else:
            self.failed.append(result)


class InvalidationOrchestrator:
    """Bounded-concurrency delete fan-out against the cache gateway."""

    def __init__(
        self,
        cache: CacheGateway,
        *,
        batch_size: int | None = None,
        max_in_flight: int | None = None,
        mode: InvalidationMode | str | None = None,
        wait_timeout: float | None = None,
    ) -> None:
        self.cache = cache
        self.batch_size = max(1, batch_size or settings.invalidation_batch_size)
        self.max_in_flight = max(1, max_in_flight or settings.invalidation_max_in_flight)
        self.mode = InvalidationMode(mode or settings.invalidation_mode)
        self.wait_timeout = (
            wait_timeout if wait_timeout is not None else settings.invalidation_wait_timeout
        )
        self._pending: set[asyncio.Task[InvalidationReport]] = set()

    @property
    def pending(self) -> int:
        """Number of sweeps still running."""
        return len(self._pending)

    async def invalidate(self, keys: Sequence[str]) -> InvalidationReport | None:
        """Start a sweep over ``keys`` according to the configured mode.

        Returns the report if the sweep finished before control returns
        to the caller, otherwise None (the sweep keeps running).
        """
        task = asyncio.create_task(self.sweep(keys))
        self._pending.add(task)
        task.add_done_callback(self._on_done)

        if self.mode is InvalidationMode.BACKGROUND:
            return None

        done, _ = await asyncio.wait({task}, timeout=self.wait_timeout)
        if task in done:
            return task.result()

        logger.info(
            f"Invalidation of {len(keys)} keys still running after "
            f"{self.wait_timeout}s, continuing in background"
        )
        return None

    async def sweep(self, keys: Sequence[str]) -> InvalidationReport:
        """Delete every key and return the per-key tally. Never raises."""
        start = time.monotonic()
        report = InvalidationReport(total=len(keys))
        semaphore = asyncio.Semaphore(self.max_in_flight)
        batches = [
            list(keys[i : i + self.batch_size]) for i in range(0, len(keys), self.batch_size)
        ]

        async def _run(batch: list[str]) -> list[CacheResult]:
            async with semaphore:
                try:
                    return await self.cache.delete_many(batch)
                except Exception as e:
                    logger.error(f"Invalidation batch of {len(batch)} keys failed: {e}")
                    return [CacheResult(key, CacheStatus.ERROR, error=str(e)) for key in batch]

        for results in await asyncio.gather(*(_run(batch) for batch in batches)):
            for result in results:
                report.record(result)

        report.duration = time.monotonic() - start

        metrics = get_metrics()
        metrics.invalidated_keys_total.labels(outcome="deleted").inc(report.deleted)
        metrics.invalidated_keys_total.labels(outcome="absent").inc(report.absent)
        metrics.invalidated_keys_total.labels(outcome="error").inc(len(report.failed))
        metrics.invalidation_duration_seconds.observe(report.duration)

        if report.failed:
            logger.warning(
                f"Invalidation sweep finished with {len(report.failed)} failed keys "
                f"out of {report.total}; cache may serve stale entries",
                extra={"first_error": report.failed[0].error},
            )
        else:
            logger.debug(
                f"Invalidated {report.total} keys "
                f"({report.deleted} deleted, {report.absent} absent) "
                f"in {report.duration:.3f}s"
            )
        return report

    def _on_done(self, task: asyncio.Task[InvalidationReport]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Invalidation sweep cancelled before completion")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Invalidation sweep crashed: {exc}")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for background sweeps, cancelling any left after ``timeout``."""
        if not self._pending:
            return
        pending = set(self._pending)
        logger.info(f"Waiting for {len(pending)} invalidation sweeps")
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
