from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from coresitemaps.errors import ErrorCode, SitemapError

KEY_SEPARATOR = "_"


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_w3c(value: datetime) -> str:
    """Render a timestamp in W3C datetime format (``2024-01-31T08:00:00+00:00``)."""
    return as_utc(value).isoformat(timespec="seconds")


class PageKey(BaseModel):
    """Identity of one sitemap page. Used as cache key and job dedup key."""

    model_config = ConfigDict(frozen=True)

    object_type: str
    sub_type: str = ""
    page: int = Field(ge=1)

    @field_validator("object_type")
    @classmethod
    def validate_object_type(cls, v: str) -> str:
        if not v:
            raise ValueError("object_type must be a non-empty string")
        return v

    @classmethod
    def build(cls, object_type: str, sub_type: str, page: int) -> PageKey:
        """Construct a key, raising ``SitemapError`` instead of a validation error."""
        try:
            return cls(object_type=object_type, sub_type=sub_type or "", page=page)
        except ValidationError as exc:
            raise SitemapError(
                code=ErrorCode.INVALID_PAGE_KEY,
                message=f"Invalid sitemap page key ({object_type!r}, {sub_type!r}, {page!r})",
                suggestion="Use a non-empty object type and a page number of 1 or more.",
                recoverable=False,
            ) from exc

    def serialize(self) -> str:
        """``post`` / ``""`` / ``3`` -> ``"post_3"``. Empty segments are omitted."""
        segments = [self.object_type, self.sub_type, str(self.page)]
        return KEY_SEPARATOR.join(segment for segment in segments if segment)

    def job_args(self) -> tuple[str, str, int]:
        return (self.object_type, self.sub_type, self.page)


@dataclass(frozen=True)
class NoSubtypes:
    """The provider handles a single undifferentiated type."""

    def names(self) -> tuple[str, ...]:
        # One implicit, unnamed sub-type.
        return ("",)

    def __contains__(self, sub_type: object) -> bool:
        return sub_type == ""


@dataclass(frozen=True)
class SubtypeList:
    """Ordered, declared sub-types of a provider (e.g. registered taxonomies)."""

    items: tuple[str, ...] = field(default_factory=tuple)

    def names(self) -> tuple[str, ...]:
        return self.items

    def __contains__(self, sub_type: object) -> bool:
        return sub_type in self.items


SubtypeSpec = NoSubtypes | SubtypeList


@dataclass(frozen=True)
class SitemapType:
    object_type: str
    sub_type: str = ""

    @property
    def queried_type(self) -> str:
        return self.sub_type or self.object_type


class SitemapPageDescriptor(BaseModel):
    """Page count for one sub-type. Always at least one page."""

    sub_type: str
    page_count: int = Field(ge=1)


class SitemapEntry(BaseModel):
    """One row of a sitemap index. ``lastmod`` is None until computed."""

    location: str
    lastmod: str | None = None


class UrlItem(BaseModel):
    """Single item returned by a catalog listing."""

    location: str
    modified_at: datetime


class LastmodEntry(BaseModel):
    key: PageKey
    lastmod: str | None = None

    @property
    def found(self) -> bool:
        return self.lastmod is not None
