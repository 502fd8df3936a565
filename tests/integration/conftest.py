"""Integration test fixtures.

Provides a fully wired SitemapsState over an in-memory SQLite option store,
the in-memory catalog and the recording job runner from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from coresitemaps.app import build_state, dispatch
from coresitemaps.config import Settings
from coresitemaps.models.sitemap import NoSubtypes, SubtypeList

if TYPE_CHECKING:
    from coresitemaps.state import SitemapsState
    from coresitemaps.store import OptionStore


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        sitemaps={"page_size": 10},
        urls={"home_url": "https://example.com/"},
    )


@pytest.fixture()
def app_state(settings: Settings, store: OptionStore, catalog, job_runner) -> SitemapsState:
    """State with a post provider and a taxonomy provider sharing one cache."""
    return build_state(
        settings,
        store,
        object_types={
            "post": NoSubtypes(),
            "taxonomy": SubtypeList(("category", "post_tag")),
        },
        catalog=catalog,
        job_runner=job_runner,
    )


@pytest.fixture()
def run_state_jobs(app_state: SitemapsState, job_runner):
    """Drain pending one-shot jobs through ``coresitemaps.app.dispatch``."""

    async def runner() -> int:
        async def route(job_name: str, args: tuple) -> None:
            await dispatch(app_state, job_name, args)

        return await job_runner.run_pending(route)

    return runner
