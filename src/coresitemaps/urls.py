"""Default location builder for sitemap pages."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from coresitemaps.config import UrlSettings


class SitemapUrlBuilder:
    """Compose absolute sitemap page URLs under a site's home URL.

    Pretty form:  ``<home>/wp-sitemap-taxonomy-category-2.xml``
    Plain form:   ``<home>/?sitemap=taxonomy&sitemap-sub-type=category&paged=2``

    Empty segments are left out of both forms.
    """

    def __init__(self, home_url: str, *, pretty_permalinks: bool = True) -> None:
        self._home = httpx.URL(home_url)
        self._pretty = pretty_permalinks

    @classmethod
    def from_settings(cls, settings: UrlSettings) -> SitemapUrlBuilder:
        return cls(settings.home_url, pretty_permalinks=settings.pretty_permalinks)

    def build_url(self, object_type: str, sub_type: str, page: int) -> str:
        base_path = self._home.path.rstrip("/")

        if self._pretty:
            name = "-".join(segment for segment in (object_type, sub_type, str(page)) if segment)
            return str(self._home.copy_with(path=f"{base_path}/wp-sitemap-{name}.xml"))

        params: dict[str, str] = {"sitemap": object_type}
        if sub_type:
            params["sitemap-sub-type"] = sub_type
        params["paged"] = str(page)
        return str(self._home.copy_with(path=f"{base_path}/").copy_merge_params(params))
