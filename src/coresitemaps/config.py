"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (CORESITEMAPS__SITEMAPS__PAGE_SIZE=500)
  2. coresitemaps.yaml      (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional — all fields have sensible defaults.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("coresitemaps")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "lastmod.db")

# Maximum number of URLs in a single sitemap page.
DEFAULT_PAGE_SIZE = 2000
# "twicedaily"
DEFAULT_REFRESH_INTERVAL_HOURS = 12.0


def _find_config_file() -> str | None:
    """Return the path of the first coresitemaps.yaml found, or None."""
    candidates = [
        Path("coresitemaps.yaml"),
        Path(platformdirs.user_config_dir("coresitemaps")) / "coresitemaps.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class TypeOverride(BaseModel):
    page_size: int | None = Field(default=None, gt=0)
    refresh_interval_hours: float | None = Field(default=None, gt=0)


class SitemapSettings(BaseModel):
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    refresh_interval_hours: float = Field(default=DEFAULT_REFRESH_INTERVAL_HOURS, gt=0)
    per_type_overrides: dict[str, TypeOverride] = {}
    pending_claim_ttl_seconds: int = Field(default=3600, gt=0)

    def page_size_for(self, object_type: str) -> int:
        override = self.per_type_overrides.get(object_type)
        if override is not None and override.page_size is not None:
            return override.page_size
        return self.page_size

    def refresh_interval_for(self, object_type: str) -> timedelta:
        hours = self.refresh_interval_hours
        override = self.per_type_overrides.get(object_type)
        if override is not None and override.refresh_interval_hours is not None:
            hours = override.refresh_interval_hours
        return timedelta(hours=hours)


class StoreSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH
    option_prefix: str = "core_sitemaps_lastmod_"


class UrlSettings(BaseModel):
    home_url: str = "http://localhost/"
    pretty_permalinks: bool = True


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: CORESITEMAPS__STORE__DB_PATH=/tmp/x.db
        env_prefix="CORESITEMAPS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    sitemaps: SitemapSettings = SitemapSettings()
    store: StoreSettings = StoreSettings()
    urls: UrlSettings = UrlSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
