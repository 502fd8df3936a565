"""Service wiring.

Responsibilities (and nothing more):
- Configure structlog
- Open the option store and build one provider per object type
- Register each provider's recurring sweep
- List index entries and dispatch due jobs to the providers
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from coresitemaps import __version__
from coresitemaps.cache import LastmodCache
from coresitemaps.config import Settings
from coresitemaps.models.jobs import CALCULATE_LASTMOD_JOB, UPDATE_LASTMOD_JOB_PREFIX
from coresitemaps.provider import SitemapProvider
from coresitemaps.state import SitemapsState
from coresitemaps.store import OptionStore
from coresitemaps.urls import SitemapUrlBuilder

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Mapping

    from coresitemaps.models.sitemap import SitemapEntry, SubtypeSpec
    from coresitemaps.protocols import CatalogProtocol, JobRunnerProtocol, UrlBuilderProtocol

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_state(
    settings: Settings,
    store: OptionStore,
    *,
    object_types: Mapping[str, SubtypeSpec | None],
    catalog: CatalogProtocol,
    job_runner: JobRunnerProtocol,
    url_builder: UrlBuilderProtocol | None = None,
) -> SitemapsState:
    """Create one provider per object type over a shared cache."""
    cache = LastmodCache(store, prefix=settings.store.option_prefix)
    if url_builder is None:
        url_builder = SitemapUrlBuilder.from_settings(settings.urls)

    state = SitemapsState(settings=settings, store=store, cache=cache)
    for object_type, sub_types in object_types.items():
        state.providers[object_type] = SitemapProvider(
            object_type,
            sub_types=sub_types,
            catalog=catalog,
            cache=cache,
            job_runner=job_runner,
            url_builder=url_builder,
            settings=settings.sitemaps,
        )
    return state


@asynccontextmanager
async def open_sitemaps(
    *,
    object_types: Mapping[str, SubtypeSpec | None],
    catalog: CatalogProtocol,
    job_runner: JobRunnerProtocol,
    url_builder: UrlBuilderProtocol | None = None,
    settings: Settings | None = None,
) -> AsyncGenerator[SitemapsState, None]:
    """Open the option store, build providers and register their sweeps."""
    if settings is None:
        settings = Settings()
        setup_logging(settings)

    log.info("sitemaps_starting", version=__version__, object_types=list(object_types))

    if settings.store.db_path != ":memory:":
        db_path = Path(settings.store.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        database = str(db_path)
    else:
        database = ":memory:"

    db = await aiosqlite.connect(database)
    try:
        store = OptionStore(db)
        await store.init_db()

        state = build_state(
            settings,
            store,
            object_types=object_types,
            catalog=catalog,
            job_runner=job_runner,
            url_builder=url_builder,
        )
        for provider in state.providers.values():
            await provider.setup()

        log.info("sitemaps_started", providers=len(state.providers))
        yield state
    finally:
        await db.close()
        log.info("sitemaps_stopping")


# ---------------------------------------------------------------------------
# Listing and job dispatch
# ---------------------------------------------------------------------------


async def index_entries(state: SitemapsState) -> list[SitemapEntry]:
    """Entries of every provider, in provider registration order."""
    entries: list[SitemapEntry] = []
    for provider in state.providers.values():
        entries.extend(await provider.get_sitemap_entries())
    return entries


async def dispatch(state: SitemapsState, job_name: str, args: tuple = ()) -> None:
    """Run a due job against the registered providers.

    The one-shot recompute job is offered to every provider; each discards
    jobs for a foreign object type. Sweep jobs go to the provider named in
    the job name. Unknown job names are ignored.
    """
    if job_name == CALCULATE_LASTMOD_JOB:
        object_type, sub_type, page = args
        for provider in state.providers.values():
            await provider.on_recompute_requested(object_type, sub_type, page)
        return

    if job_name.startswith(UPDATE_LASTMOD_JOB_PREFIX):
        object_type = job_name.removeprefix(UPDATE_LASTMOD_JOB_PREFIX)
        provider = state.providers.get(object_type)
        if provider is not None:
            await provider.on_sweep_triggered()
            return

    log.warning("job_dispatch_unknown", job_name=job_name)
