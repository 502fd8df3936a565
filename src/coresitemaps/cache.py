"""Lastmod cache: one persisted option per sitemap page.

Entries have no TTL. They are only ever overwritten by the recompute job for
the same key. Reads never compute anything; a miss is reported to the
optional ``on_miss`` callback and returned immediately.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coresitemaps.models.sitemap import LastmodEntry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from coresitemaps.models.sitemap import PageKey
    from coresitemaps.protocols import OptionStoreProtocol

log = structlog.get_logger()


class LastmodCache:
    def __init__(self, store: OptionStoreProtocol, *, prefix: str = "") -> None:
        self._store = store
        self._prefix = prefix

    def option_name(self, key: PageKey) -> str:
        return f"{self._prefix}{key.serialize()}"

    async def get(
        self,
        key: PageKey,
        *,
        on_miss: Callable[[PageKey], Awaitable[object]] | None = None,
        background: bool = False,
    ) -> LastmodEntry:
        """Read the cached lastmod for ``key``.

        On a miss outside a background context, ``on_miss`` is awaited once
        (it is expected to enqueue without blocking on the computation).
        """
        value = await self._store.get_value(self.option_name(key))
        # An empty string is never written, but treat it as absent if found.
        if not value:
            log.debug("lastmod_cache_miss", key=key.serialize(), background=background)
            if on_miss is not None and not background:
                await on_miss(key)
            return LastmodEntry(key=key)
        return LastmodEntry(key=key, lastmod=value)

    async def set(self, key: PageKey, lastmod: str) -> None:
        """Overwrite the cached lastmod for ``key``. Last writer wins."""
        if not lastmod:
            raise ValueError("lastmod must be a non-empty timestamp string")
        await self._store.set_value(self.option_name(key), lastmod)
        log.debug("lastmod_cache_set", key=key.serialize(), lastmod=lastmod)
