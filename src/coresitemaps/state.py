"""Sitemaps state container.

SitemapsState is created once by ``open_sitemaps`` and passed to the
listing and job dispatch functions in ``coresitemaps.app``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coresitemaps.cache import LastmodCache
    from coresitemaps.config import Settings
    from coresitemaps.protocols import OptionStoreProtocol
    from coresitemaps.provider import SitemapProvider


@dataclass
class SitemapsState:
    """Holds all shared runtime state."""

    settings: Settings
    store: OptionStoreProtocol
    cache: LastmodCache
    # object type -> provider, in registration (index) order
    providers: dict[str, SitemapProvider] = field(default_factory=dict)
