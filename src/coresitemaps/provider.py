"""Sitemap provider: assembles the entry list for one object type.

Owns the read path (page descriptors, URLs, cached lastmod values) and wires
its ``RecomputeScheduler`` for the write path. The provider holds no global
state; ``handlers()`` exposes the job callbacks for the host to register
with its own job runner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from coresitemaps.errors import ErrorCode, SitemapError
from coresitemaps.models.jobs import CALCULATE_LASTMOD_JOB, sweep_job_name
from coresitemaps.models.sitemap import (
    NoSubtypes,
    PageKey,
    SitemapEntry,
    SitemapPageDescriptor,
    SitemapType,
    UrlItem,
)
from coresitemaps.pagination import PaginationCalculator
from coresitemaps.scheduler import RecomputeScheduler, in_background, utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from coresitemaps.cache import LastmodCache
    from coresitemaps.config import SitemapSettings
    from coresitemaps.models.sitemap import SubtypeSpec
    from coresitemaps.protocols import CatalogProtocol, JobRunnerProtocol, UrlBuilderProtocol

log = structlog.get_logger()


class SitemapProvider:
    """Sitemap pages for one object type (``post``, ``taxonomy``, ``user``...)."""

    def __init__(
        self,
        object_type: str,
        *,
        catalog: CatalogProtocol,
        cache: LastmodCache,
        job_runner: JobRunnerProtocol,
        url_builder: UrlBuilderProtocol,
        settings: SitemapSettings,
        sub_types: SubtypeSpec | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not object_type:
            raise ValueError("object_type must be a non-empty string")
        self.object_type = object_type
        self.sub_types: SubtypeSpec = sub_types if sub_types is not None else NoSubtypes()
        self._catalog = catalog
        self._cache = cache
        self._url_builder = url_builder
        self.calculator = PaginationCalculator(catalog, settings)
        self.scheduler = RecomputeScheduler(
            object_type,
            sub_types=self.sub_types,
            catalog=catalog,
            cache=cache,
            job_runner=job_runner,
            settings=settings,
            enumerate_pages=self.get_sitemap_type_data,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Sub-types
    # ------------------------------------------------------------------

    def get_object_sub_types(self) -> SubtypeSpec:
        return self.sub_types

    def validate_sub_type(self, sub_type: str) -> str:
        """Return ``sub_type`` if this provider declares it, else raise."""
        sub_type = sub_type or ""
        if sub_type not in self.sub_types:
            if isinstance(self.sub_types, NoSubtypes):
                suggestion = f"'{self.object_type}' has no sub-types; pass an empty sub-type."
            else:
                suggestion = "Use one of: " + ", ".join(self.sub_types.names())
            raise SitemapError(
                code=ErrorCode.UNKNOWN_SUB_TYPE,
                message=f"Unknown sub-type {sub_type!r} for object type '{self.object_type}'.",
                suggestion=suggestion,
                recoverable=False,
            )
        return sub_type

    def get_queried_type(self, sub_type: str = "") -> str:
        return SitemapType(self.object_type, self.validate_sub_type(sub_type)).queried_type

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def max_num_pages(self, sub_type: str = "") -> int:
        """Page count for ``sub_type``. Falls back to one page if the catalog fails."""
        sub_type = self.validate_sub_type(sub_type)
        try:
            return await self.calculator.max_num_pages(self.object_type, sub_type)
        except Exception:
            log.warning(
                "catalog_unavailable",
                code=ErrorCode.CATALOG_UNAVAILABLE,
                object_type=self.object_type,
                sub_type=sub_type,
                exc_info=True,
            )
            return 1

    async def get_sitemap_type_data(self) -> list[SitemapPageDescriptor]:
        """Page descriptors for every declared sub-type, in declaration order."""
        return [
            SitemapPageDescriptor(sub_type=name, page_count=await self.max_num_pages(name))
            for name in self.sub_types.names()
        ]

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get_sitemap_url(self, sub_type: str, page: int) -> str:
        key = PageKey.build(self.object_type, self.validate_sub_type(sub_type), page)
        return self._url_builder.build_url(key.object_type, key.sub_type, key.page)

    async def get_sitemap_lastmod(
        self, sub_type: str, page: int, *, background: bool | None = None
    ) -> str | None:
        """Cached lastmod for one page; schedules a recompute on a miss.

        ``background`` defaults to whether a job or sweep is running in the
        current context. Misses in a background context are not rescheduled.
        """
        key = PageKey.build(self.object_type, self.validate_sub_type(sub_type), page)
        if background is None:
            background = in_background()
        entry = await self._cache.get(
            key, on_miss=self.scheduler.enqueue_recompute, background=background
        )
        return entry.lastmod

    async def get_sitemap_entries(self, *, background: bool | None = None) -> list[SitemapEntry]:
        """Entries ordered by sub-type, then page number."""
        entries: list[SitemapEntry] = []
        for descriptor in await self.get_sitemap_type_data():
            for page in range(1, descriptor.page_count + 1):
                entries.append(
                    SitemapEntry(
                        location=self.get_sitemap_url(descriptor.sub_type, page),
                        lastmod=await self.get_sitemap_lastmod(
                            descriptor.sub_type, page, background=background
                        ),
                    )
                )
        log.debug("sitemap_entries_listed", object_type=self.object_type, count=len(entries))
        return entries

    async def get_url_list(self, sub_type: str, page: int) -> list[UrlItem]:
        """Items listed on one sitemap page, as returned by the catalog."""
        key = PageKey.build(self.object_type, self.validate_sub_type(sub_type), page)
        raw_items = await self._catalog.recent_items(
            key.object_type,
            key.sub_type,
            key.page,
            self.calculator.page_size_for(self.object_type),
        )
        return [
            item if isinstance(item, UrlItem) else UrlItem.model_validate(item)
            for item in raw_items
        ]

    # ------------------------------------------------------------------
    # Job wiring
    # ------------------------------------------------------------------

    async def setup(self) -> bool:
        """Register the recurring sweep for this object type (idempotent)."""
        return await self.scheduler.register_sweep()

    async def on_recompute_requested(self, object_type: str, sub_type: str, page: int) -> None:
        await self.scheduler.execute_recompute(object_type, sub_type, page)

    async def on_sweep_triggered(self) -> None:
        await self.scheduler.trigger_full_refresh()

    def handlers(self) -> dict[str, Callable[..., Awaitable[Any]]]:
        """Job name -> callback, for registration with the host's job runner."""
        return {
            CALCULATE_LASTMOD_JOB: self.on_recompute_requested,
            sweep_job_name(self.object_type): self.on_sweep_triggered,
        }
