"""Unit tests for coresitemaps.store and coresitemaps.cache."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from coresitemaps.models.sitemap import PageKey

if TYPE_CHECKING:
    from coresitemaps.cache import LastmodCache
    from coresitemaps.store import OptionStore

# ---------------------------------------------------------------------------
# Option store
# ---------------------------------------------------------------------------


class TestOptionStore:
    async def test_set_and_get(self, store: OptionStore) -> None:
        await store.set_value("core_sitemaps_lastmod_post_1", "2024-01-01T00:00:00+00:00")
        assert await store.get_value("core_sitemaps_lastmod_post_1") == "2024-01-01T00:00:00+00:00"

    async def test_get_nonexistent_returns_none(self, store: OptionStore) -> None:
        assert await store.get_value("missing") is None

    async def test_upsert_overwrites(self, store: OptionStore) -> None:
        await store.set_value("name", "v1")
        await store.set_value("name", "v2")
        assert await store.get_value("name") == "v2"

    async def test_read_failure_returns_none(self, store: OptionStore) -> None:
        """Simulate a database read error — should return None, not raise."""
        await store.set_value("name", "v1")
        original_execute = store._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        store._db.execute = failing_execute  # type: ignore[assignment]
        assert await store.get_value("name") is None
        store._db.execute = original_execute  # type: ignore[assignment]

    async def test_write_failure_does_not_raise(self, store: OptionStore) -> None:
        original_execute = store._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        store._db.execute = failing_execute  # type: ignore[assignment]
        await store.set_value("name", "v1")
        store._db.execute = original_execute  # type: ignore[assignment]

        assert await store.get_value("name") is None


# ---------------------------------------------------------------------------
# Lastmod cache
# ---------------------------------------------------------------------------


class TestLastmodCache:
    async def test_option_name_uses_serialised_key(self, cache: LastmodCache) -> None:
        key = PageKey(object_type="post", page=3)
        assert cache.option_name(key) == "core_sitemaps_lastmod_post_3"

    async def test_set_then_get(self, cache: LastmodCache, store: OptionStore) -> None:
        key = PageKey(object_type="taxonomy", sub_type="category", page=1)
        await cache.set(key, "2024-02-01T10:00:00+00:00")

        entry = await cache.get(key)
        assert entry.found is True
        assert entry.lastmod == "2024-02-01T10:00:00+00:00"
        assert (
            await store.get_value("core_sitemaps_lastmod_taxonomy_category_1")
            == "2024-02-01T10:00:00+00:00"
        )

    async def test_miss_is_not_found(self, cache: LastmodCache) -> None:
        entry = await cache.get(PageKey(object_type="post", page=1))
        assert entry.found is False
        assert entry.lastmod is None

    async def test_miss_calls_on_miss_once(self, cache: LastmodCache) -> None:
        key = PageKey(object_type="post", page=1)
        on_miss = AsyncMock(return_value=True)

        await cache.get(key, on_miss=on_miss)

        on_miss.assert_awaited_once_with(key)

    async def test_hit_does_not_call_on_miss(self, cache: LastmodCache) -> None:
        key = PageKey(object_type="post", page=1)
        await cache.set(key, "2024-02-01T10:00:00+00:00")
        on_miss = AsyncMock()

        await cache.get(key, on_miss=on_miss)

        on_miss.assert_not_awaited()

    async def test_background_miss_does_not_call_on_miss(self, cache: LastmodCache) -> None:
        on_miss = AsyncMock()

        key = PageKey(object_type="post", page=1)
        entry = await cache.get(key, on_miss=on_miss, background=True)

        assert entry.found is False
        on_miss.assert_not_awaited()

    async def test_get_never_writes(self, cache: LastmodCache, store: OptionStore) -> None:
        key = PageKey(object_type="post", page=1)
        await cache.get(key, on_miss=AsyncMock())
        assert await store.get_value(cache.option_name(key)) is None

    async def test_empty_stored_value_is_a_miss(
        self, cache: LastmodCache, store: OptionStore
    ) -> None:
        key = PageKey(object_type="post", page=1)
        await store.set_value(cache.option_name(key), "")
        assert (await cache.get(key)).found is False

    async def test_set_rejects_empty_value(self, cache: LastmodCache) -> None:
        with pytest.raises(ValueError):
            await cache.set(PageKey(object_type="post", page=1), "")

    async def test_last_writer_wins(self, cache: LastmodCache) -> None:
        key = PageKey(object_type="post", page=1)
        await cache.set(key, "2024-02-01T10:00:00+00:00")
        await cache.set(key, "2023-01-01T00:00:00+00:00")
        assert (await cache.get(key)).lastmod == "2023-01-01T00:00:00+00:00"
