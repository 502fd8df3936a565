from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel

from coresitemaps.models.sitemap import PageKey

CALCULATE_LASTMOD_JOB = "core_sitemaps_calculate_lastmod"
UPDATE_LASTMOD_JOB_PREFIX = "core_sitemaps_update_lastmod_"


def sweep_job_name(object_type: str) -> str:
    return f"{UPDATE_LASTMOD_JOB_PREFIX}{object_type}"


class RecomputeJob(BaseModel):
    """A pending one-shot lastmod recomputation for one page."""

    key: PageKey
    scheduled_at: datetime


class RefreshSweepJob(BaseModel):
    """The recurring full refresh for one object type."""

    object_type: str
    first_run: datetime
    interval: timedelta

    @property
    def job_name(self) -> str:
        return sweep_job_name(self.object_type)
