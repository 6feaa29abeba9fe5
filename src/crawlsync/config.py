"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (CRAWLSYNC__QDRANT__URL=http://qdrant:6333)
  2. crawlsync.yaml         (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Everything is validated once at load time. Sites and feed pages are frozen
models so a running pipeline can never observe a config change mid-run.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("crawlsync")

DEFAULT_USER_AGENT = "crawlsync/1.0 (+https://github.com/crawlsync/crawlsync)"


def _find_config_file() -> str | None:
    """Return the path of the first crawlsync.yaml found, or None."""
    candidates = [
        Path("crawlsync.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "crawlsync.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


def _compile_optional(pattern: str | None) -> str | None:
    if pattern is None or not pattern.strip():
        return None
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"Invalid URL regex {pattern!r}: {exc}") from exc
    return pattern


class SiteSettings(BaseModel):
    """One crawl target. ``name`` doubles as the ``source`` tag in the store."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    seeds: list[str] = Field(min_length=1)
    allowed_hosts: list[str] = []
    include_url_regex: str | None = None
    exclude_url_regex: str | None = None

    # None means "use the crawler-level default"
    max_depth: int | None = Field(default=None, ge=0, le=10)
    max_pages: int | None = Field(default=None, ge=1, le=10_000)
    concurrency: int | None = Field(default=None, ge=1, le=64)

    @field_validator("include_url_regex", "exclude_url_regex")
    @classmethod
    def validate_regex(cls, v: str | None) -> str | None:
        return _compile_optional(v)

    @field_validator("seeds")
    @classmethod
    def validate_seeds(cls, v: list[str]) -> list[str]:
        if any(not seed.strip() for seed in v):
            raise ValueError("Seed URLs must not be blank")
        return v


class CrawlerSettings(BaseModel):
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    timeout_seconds: float = Field(default=20.0, ge=1.0, le=120.0)
    max_depth: int = Field(default=2, ge=0, le=10)
    max_pages: int = Field(default=500, ge=1, le=10_000)
    concurrency: int = Field(default=4, ge=1, le=64)
    # Random delay before each fetch, in milliseconds (min, max)
    politeness_delay_ms: tuple[int, int] = (250, 2_000)
    max_pdf_bytes: int = Field(default=20 * 1024 * 1024, ge=1)
    sites: list[SiteSettings] = []

    @field_validator("politeness_delay_ms")
    @classmethod
    def validate_delay(cls, v: tuple[int, int]) -> tuple[int, int]:
        low, high = v
        if low < 0 or high < low:
            raise ValueError(f"Invalid politeness delay range: {v!r}")
        return v

    @field_validator("sites")
    @classmethod
    def validate_unique_names(cls, v: list[SiteSettings]) -> list[SiteSettings]:
        names = [site.name for site in v]
        if len(names) != len(set(names)):
            raise ValueError("Site names must be unique")
        return v

    def depth_for(self, site: SiteSettings) -> int:
        return site.max_depth if site.max_depth is not None else self.max_depth

    def pages_for(self, site: SiteSettings) -> int:
        return site.max_pages if site.max_pages is not None else self.max_pages

    def concurrency_for(self, site: SiteSettings) -> int:
        return site.concurrency if site.concurrency is not None else self.concurrency


class FeedPageSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    page_id: str = Field(min_length=1)


class FeedSettings(BaseModel):
    base_url: str = "https://graph.facebook.com"
    api_version: str = "v24.0"
    access_token: str = ""
    timeout_seconds: float = Field(default=20.0, ge=1.0, le=120.0)
    max_posts: int = Field(default=50, ge=1, le=1_000)
    source_prefix: str = "facebook:"
    pages: list[FeedPageSettings] = []

    @model_validator(mode="after")
    def validate_token(self) -> FeedSettings:
        if self.pages and not self.access_token:
            raise ValueError("feed.access_token is required when feed pages are configured")
        return self

    @property
    def api_base(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_version}"


class QdrantSettings(BaseModel):
    url: str = "http://localhost:6333"
    api_key: str = ""
    collection: str = "crawlsync"
    timeout_seconds: float = Field(default=30.0, ge=1.0)
    create_collection: bool = False


class EmbeddingSettings(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    # Empty falls back to the OPENAI_API_KEY environment variable
    api_key: str = ""
    model: str = "text-embedding-3-small"
    dimensions: int = Field(default=1536, ge=1)
    batch_size: int = Field(default=64, ge=1, le=2048)
    timeout_seconds: float = Field(default=60.0, ge=1.0)
    max_retries: int = Field(default=2, ge=0, le=10)


class ChunkingSettings(BaseModel):
    encoding: str = "cl100k_base"
    chunk_size: int = Field(default=800, ge=1)
    min_chunk_size_chars: int = Field(default=350, ge=0)
    min_chunk_length_to_embed: int = Field(default=5, ge=0)
    max_num_chunks: int = Field(default=10_000, ge=1)


class RetentionSettings(BaseModel):
    days: int = Field(default=30, ge=1)


class ScheduleSettings(BaseModel):
    hourly_interval_minutes: int = Field(default=60, ge=1)
    daily_interval_hours: int = Field(default=24, ge=1)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: CRAWLSYNC__RETENTION__DAYS=14
        env_prefix="CRAWLSYNC__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    qdrant: QdrantSettings = QdrantSettings()
    embedding: EmbeddingSettings = EmbeddingSettings()
    crawler: CrawlerSettings = CrawlerSettings()
    feed: FeedSettings = FeedSettings()
    chunking: ChunkingSettings = ChunkingSettings()
    retention: RetentionSettings = RetentionSettings()
    schedule: ScheduleSettings = ScheduleSettings()
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


def load_settings(config_file: str | Path | None = None) -> Settings:
    """Build Settings, optionally reading an explicit YAML file instead of the search path.

    Environment variables still take precedence over the file.
    """
    if config_file is None:
        return Settings()

    path = Path(config_file).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    class _FileSettings(Settings):
        model_config = SettingsConfigDict(yaml_file=str(path))

    return _FileSettings()
