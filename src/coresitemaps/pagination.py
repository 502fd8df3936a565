"""Page count derivation for sitemap sub-types.

``page_count`` is pure; ``PaginationCalculator`` adds the catalog lookup and
per-type page size resolution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coresitemaps.models.sitemap import SitemapType

if TYPE_CHECKING:
    from coresitemaps.config import SitemapSettings
    from coresitemaps.protocols import CatalogProtocol

log = structlog.get_logger()


def page_count(total: int, page_size: int) -> int:
    """Return ``max(1, ceil(total / page_size))``.

    An empty catalog still produces one (empty) page so every declared
    sub-type appears in the index.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if total <= 0:
        return 1
    return max(1, -(-total // page_size))


class PaginationCalculator:
    def __init__(self, catalog: CatalogProtocol, settings: SitemapSettings) -> None:
        self._catalog = catalog
        self._settings = settings

    def page_size_for(self, object_type: str) -> int:
        return self._settings.page_size_for(object_type)

    async def max_num_pages(self, object_type: str, sub_type: str = "") -> int:
        """Number of sitemap pages for ``sub_type`` (or ``object_type`` when empty)."""
        queried_type = SitemapType(object_type, sub_type).queried_type
        total = await self._catalog.count(queried_type)
        pages = page_count(total, self.page_size_for(object_type))
        log.debug(
            "sitemap_page_count",
            object_type=object_type,
            sub_type=sub_type,
            total=total,
            pages=pages,
        )
        return pages
