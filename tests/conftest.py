"""Shared test fixtures for the coresitemaps test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from coresitemaps.cache import LastmodCache
from coresitemaps.config import SitemapSettings
from coresitemaps.errors import ErrorCode, SitemapError
from coresitemaps.models.sitemap import UrlItem
from coresitemaps.provider import SitemapProvider
from coresitemaps.store import OptionStore
from coresitemaps.urls import SitemapUrlBuilder

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class InMemoryCatalog:
    """Catalog keyed by queried type (sub-type, or object type when empty)."""

    def __init__(self) -> None:
        self.items: dict[str, list[UrlItem]] = {}
        self.unavailable = False
        self.count_calls: list[str] = []

    def add(self, queried_type: str, total: int, *, start: datetime = BASE_TIME) -> None:
        self.items[queried_type] = [
            UrlItem(
                location=f"https://example.com/{queried_type}/{i}",
                modified_at=start + timedelta(hours=i),
            )
            for i in range(total)
        ]

    async def count(self, queried_type: str) -> int:
        self.count_calls.append(queried_type)
        if self.unavailable:
            raise SitemapError(
                code=ErrorCode.CATALOG_UNAVAILABLE,
                message="catalog offline",
                recoverable=True,
            )
        return len(self.items.get(queried_type, []))

    async def recent_items(
        self, object_type: str, sub_type: str, page: int, page_size: int
    ) -> list[UrlItem]:
        if self.unavailable:
            raise SitemapError(
                code=ErrorCode.CATALOG_UNAVAILABLE,
                message="catalog offline",
                recoverable=True,
            )
        items = self.items.get(sub_type or object_type, [])
        return items[(page - 1) * page_size : page * page_size]


class RecordingJobRunner:
    """Job runner that records schedules and runs one-shot jobs on demand.

    ``schedule_once`` does not deduplicate, so tests observe exactly what the
    scheduler asked for.
    """

    def __init__(self) -> None:
        self.once: list[tuple[str, datetime, tuple]] = []
        self.recurring: list[tuple[str, datetime, timedelta, tuple]] = []

    async def schedule_once(self, job_name: str, run_at: datetime, args: tuple) -> None:
        self.once.append((job_name, run_at, args))

    async def schedule_recurring(
        self, job_name: str, first_run: datetime, interval: timedelta, args: tuple
    ) -> None:
        self.recurring.append((job_name, first_run, interval, args))

    async def is_scheduled(self, job_name: str, args: tuple) -> bool:
        return any(name == job_name and a == args for name, _, a in self.once) or any(
            name == job_name and a == args for name, _, _, a in self.recurring
        )

    async def run_pending(self, dispatch: Callable[[str, tuple], Awaitable[object]]) -> int:
        """Execute and drain every one-shot job scheduled so far."""
        jobs, self.once = self.once, []
        for job_name, _, args in jobs:
            await dispatch(job_name, args)
        return len(jobs)


def provider_dispatch(provider: SitemapProvider) -> Callable[[str, tuple], Awaitable[object]]:
    handlers = provider.handlers()

    async def dispatch(job_name: str, args: tuple) -> object:
        return await handlers[job_name](*args)

    return dispatch


@pytest.fixture()
async def store() -> OptionStore:
    async with aiosqlite.connect(":memory:") as db:
        option_store = OptionStore(db)
        await option_store.init_db()
        yield option_store


@pytest.fixture()
def cache(store: OptionStore) -> LastmodCache:
    return LastmodCache(store, prefix="core_sitemaps_lastmod_")


@pytest.fixture()
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture()
def job_runner() -> RecordingJobRunner:
    return RecordingJobRunner()


@pytest.fixture()
def sitemap_settings() -> SitemapSettings:
    return SitemapSettings(page_size=10)


@pytest.fixture()
def url_builder() -> SitemapUrlBuilder:
    return SitemapUrlBuilder("https://example.com/")


@pytest.fixture()
def make_provider(
    catalog: InMemoryCatalog,
    cache: LastmodCache,
    job_runner: RecordingJobRunner,
    url_builder: SitemapUrlBuilder,
    sitemap_settings: SitemapSettings,
) -> Callable[..., SitemapProvider]:
    def factory(object_type: str = "post", **kwargs) -> SitemapProvider:
        return SitemapProvider(
            object_type,
            catalog=kwargs.pop("catalog", catalog),
            cache=kwargs.pop("cache", cache),
            job_runner=kwargs.pop("job_runner", job_runner),
            url_builder=kwargs.pop("url_builder", url_builder),
            settings=kwargs.pop("settings", sitemap_settings),
            **kwargs,
        )

    return factory


@pytest.fixture()
def run_jobs(job_runner: RecordingJobRunner) -> Callable[[SitemapProvider], Awaitable[int]]:
    """Run every pending one-shot job through a provider's handlers."""

    async def runner(provider: SitemapProvider) -> int:
        return await job_runner.run_pending(provider_dispatch(provider))

    return runner
