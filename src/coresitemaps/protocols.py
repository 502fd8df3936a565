"""Protocol interfaces for the collaborators the core depends on.

The core references these protocols, not concrete implementations. This allows:
- Tests to use lightweight in-memory implementations
- Hosts to plug in their own content store, job queue and option store
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime, timedelta

    from coresitemaps.models.sitemap import UrlItem


class CatalogProtocol(Protocol):
    """Interface for the content store being mapped."""

    async def count(self, queried_type: str) -> int: ...

    async def recent_items(
        self, object_type: str, sub_type: str, page: int, page_size: int
    ) -> Sequence[UrlItem | dict[str, Any]]: ...


class JobRunnerProtocol(Protocol):
    """Interface for the external job queue. Timer mechanics live there."""

    async def schedule_once(self, job_name: str, run_at: datetime, args: tuple) -> None: ...

    async def schedule_recurring(
        self, job_name: str, first_run: datetime, interval: timedelta, args: tuple
    ) -> None: ...

    async def is_scheduled(self, job_name: str, args: tuple) -> bool: ...


class OptionStoreProtocol(Protocol):
    """Interface for the persisted key/value option store."""

    async def get_value(self, name: str) -> str | None: ...

    async def set_value(self, name: str, value: str) -> None: ...


class UrlBuilderProtocol(Protocol):
    """Interface for composing the location of one sitemap page."""

    def build_url(self, object_type: str, sub_type: str, page: int) -> str: ...
