"""Deduplicated background recomputation of sitemap lastmod values.

The scheduler owns three job-facing operations for one object type:

- ``enqueue_recompute``: schedule a one-shot job for one page unless one is
  already pending for the same key.
- ``execute_recompute``: the one-shot job body. Reads the page's items from
  the catalog and writes the newest modification time to the cache.
- ``trigger_full_refresh``: the recurring sweep. Fans out one job per page
  across every sub-type.

Catalog and job runner failures are absorbed here: they are logged and the
cache stays as it was. The next read miss or sweep retries.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from coresitemaps.errors import ErrorCode, SitemapError
from coresitemaps.models.jobs import (
    CALCULATE_LASTMOD_JOB,
    RecomputeJob,
    RefreshSweepJob,
    sweep_job_name,
)
from coresitemaps.models.sitemap import PageKey, UrlItem, as_utc, format_w3c

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

    from coresitemaps.cache import LastmodCache
    from coresitemaps.config import SitemapSettings
    from coresitemaps.models.sitemap import SitemapPageDescriptor, SubtypeSpec
    from coresitemaps.protocols import CatalogProtocol, JobRunnerProtocol

log = structlog.get_logger()

_in_background: ContextVar[bool] = ContextVar("coresitemaps_in_background", default=False)


def in_background() -> bool:
    """True while a recompute job or sweep is running in the current context."""
    return _in_background.get()


@contextmanager
def background_context() -> Iterator[None]:
    token = _in_background.set(True)
    try:
        yield
    finally:
        _in_background.reset(token)


def utcnow() -> datetime:
    return datetime.now(UTC)


class RecomputeScheduler:
    """Schedules and executes lastmod recomputation for one object type."""

    def __init__(
        self,
        object_type: str,
        *,
        sub_types: SubtypeSpec,
        catalog: CatalogProtocol,
        cache: LastmodCache,
        job_runner: JobRunnerProtocol,
        settings: SitemapSettings,
        enumerate_pages: Callable[[], Awaitable[list[SitemapPageDescriptor]]],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.object_type = object_type
        self._sub_types = sub_types
        self._catalog = catalog
        self._cache = cache
        self._job_runner = job_runner
        self._settings = settings
        self._enumerate_pages = enumerate_pages
        self._clock = clock
        # Insert-if-absent claims, one per key with a job in flight.
        self._pending: dict[PageKey, RecomputeJob] = {}
        self._lock = asyncio.Lock()

    @property
    def claim_ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.pending_claim_ttl_seconds)

    def pending_jobs(self) -> list[RecomputeJob]:
        return list(self._pending.values())

    # ------------------------------------------------------------------
    # One-shot jobs
    # ------------------------------------------------------------------

    async def enqueue_recompute(self, key: PageKey) -> bool:
        """Schedule a recompute job for ``key``.

        Returns True when a new job was scheduled, False when one was already
        pending (or the job runner failed). The check and the schedule happen
        under one lock so concurrent callers cannot both schedule.
        """
        args = key.job_args()
        async with self._lock:
            now = self._clock()
            claim = self._pending.get(key)
            if claim is not None and now - claim.scheduled_at < self.claim_ttl:
                log.debug("recompute_job_suppressed", key=key.serialize(), source="claim")
                return False

            try:
                if await self._job_runner.is_scheduled(CALCULATE_LASTMOD_JOB, args):
                    self._pending[key] = RecomputeJob(key=key, scheduled_at=now)
                    log.debug("recompute_job_suppressed", key=key.serialize(), source="runner")
                    return False
                await self._job_runner.schedule_once(CALCULATE_LASTMOD_JOB, now, args)
            except Exception:
                self._pending.pop(key, None)
                log.warning(
                    "recompute_job_enqueue_error",
                    code=ErrorCode.JOB_RUNNER_UNAVAILABLE,
                    key=key.serialize(),
                    exc_info=True,
                )
                return False

            self._pending[key] = RecomputeJob(key=key, scheduled_at=now)

        log.info("recompute_job_enqueued", key=key.serialize())
        return True

    async def execute_recompute(self, object_type: str, sub_type: str, page: int) -> str | None:
        """Recompute and store the lastmod of one page.

        Returns the stored timestamp, or None when nothing was written
        (foreign object type, unknown sub-type, empty page or catalog failure).
        """
        if object_type != self.object_type:
            # Several providers share the one-shot job name.
            return None

        try:
            key = PageKey.build(object_type, sub_type, page)
        except SitemapError:
            log.warning(
                "recompute_job_discarded",
                reason="invalid_key",
                object_type=object_type,
                sub_type=sub_type,
                page=page,
            )
            return None

        try:
            if key.sub_type not in self._sub_types:
                log.warning(
                    "recompute_job_discarded", reason="unknown_sub_type", key=key.serialize()
                )
                return None
            lastmod, count = await self._recompute(key)
        finally:
            # Held until the write lands so reads during the job do not re-enqueue.
            async with self._lock:
                self._pending.pop(key, None)

        if lastmod is not None:
            log.info("recompute_complete", key=key.serialize(), lastmod=lastmod, items=count)
        return lastmod

    async def _recompute(self, key: PageKey) -> tuple[str | None, int]:
        with background_context():
            try:
                raw_items = await self._catalog.recent_items(
                    key.object_type,
                    key.sub_type,
                    key.page,
                    self._settings.page_size_for(key.object_type),
                )
                items = [
                    item if isinstance(item, UrlItem) else UrlItem.model_validate(item)
                    for item in raw_items
                ]
            except ValidationError:
                log.warning(
                    "catalog_unavailable", key=key.serialize(), reason="malformed", exc_info=True
                )
                return None, 0
            except Exception:
                log.warning(
                    "catalog_unavailable", key=key.serialize(), reason="error", exc_info=True
                )
                return None, 0

            if not items:
                log.info("recompute_skipped_empty_page", key=key.serialize())
                return None, 0

            newest = max(items, key=lambda item: as_utc(item.modified_at))
            lastmod = format_w3c(newest.modified_at)
            await self._cache.set(key, lastmod)
        return lastmod, len(items)

    # ------------------------------------------------------------------
    # Recurring sweep
    # ------------------------------------------------------------------

    async def trigger_full_refresh(self) -> int:
        """Enqueue one recompute job per page of every sub-type.

        Returns the number of jobs newly scheduled.
        """
        with background_context():
            try:
                descriptors = await self._enumerate_pages()
            except Exception:
                log.warning("sweep_enumeration_error", object_type=self.object_type, exc_info=True)
                return 0

            total_pages = 0
            scheduled = 0
            for descriptor in descriptors:
                for page in range(1, descriptor.page_count + 1):
                    total_pages += 1
                    key = PageKey.build(self.object_type, descriptor.sub_type, page)
                    if await self.enqueue_recompute(key):
                        scheduled += 1

        log.info(
            "sweep_complete",
            object_type=self.object_type,
            pages=total_pages,
            scheduled=scheduled,
        )
        return scheduled

    async def register_sweep(self) -> bool:
        """Register the recurring sweep once. Repeated calls are no-ops."""
        job_name = sweep_job_name(self.object_type)
        async with self._lock:
            try:
                if await self._job_runner.is_scheduled(job_name, ()):
                    log.debug("sweep_already_registered", object_type=self.object_type)
                    return False
                job = RefreshSweepJob(
                    object_type=self.object_type,
                    first_run=self._clock(),
                    interval=self._settings.refresh_interval_for(self.object_type),
                )
                await self._job_runner.schedule_recurring(
                    job.job_name, job.first_run, job.interval, ()
                )
            except Exception:
                log.warning(
                    "sweep_register_error",
                    code=ErrorCode.JOB_RUNNER_UNAVAILABLE,
                    object_type=self.object_type,
                    exc_info=True,
                )
                return False

        log.info(
            "sweep_registered",
            object_type=self.object_type,
            interval_seconds=job.interval.total_seconds(),
        )
        return True
