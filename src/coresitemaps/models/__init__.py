from __future__ import annotations

from coresitemaps.models.jobs import (
    CALCULATE_LASTMOD_JOB,
    RecomputeJob,
    RefreshSweepJob,
    sweep_job_name,
)
from coresitemaps.models.sitemap import (
    LastmodEntry,
    NoSubtypes,
    PageKey,
    SitemapEntry,
    SitemapPageDescriptor,
    SitemapType,
    SubtypeList,
    SubtypeSpec,
    UrlItem,
    format_w3c,
)

__all__ = [
    # sitemap
    "PageKey",
    "SitemapType",
    "NoSubtypes",
    "SubtypeList",
    "SubtypeSpec",
    "SitemapPageDescriptor",
    "SitemapEntry",
    "UrlItem",
    "LastmodEntry",
    "format_w3c",
    # jobs
    "CALCULATE_LASTMOD_JOB",
    "RecomputeJob",
    "RefreshSweepJob",
    "sweep_job_name",
]
