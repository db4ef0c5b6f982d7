"""Application settings loaded from environment variables.

Hey future me - every group is a plain pydantic model nested under Settings,
so ECHOMETA_LASTFM__API_KEY=... ends up in settings.lastfm.api_key. Nothing
here is mutated at runtime! Runtime overrides live in the app_settings table
and are merged by MetadataSettingsService into an EnrichmentConfig struct.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///./echometa.db"
    echo: bool = False
    pool_pre_ping: bool = True
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600
    # Tests and first start; production runs `alembic upgrade head` and turns this off
    auto_create_tables: bool = True


class MusicBrainzSettings(BaseModel):
    """MusicBrainz client identity (the User-Agent is mandatory for MB)."""

    app_name: str = "echometa"
    app_version: str = "1.0.0"
    contact: str = "admin@localhost"


class LastfmSettings(BaseModel):
    """Last.fm API settings."""

    api_key: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class FanartSettings(BaseModel):
    """Fanart.tv API settings."""

    api_key: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class HttpSettings(BaseModel):
    """Outbound HTTP settings shared by every provider."""

    default_timeout: float = Field(default=10.0, gt=0)
    max_concurrent_per_provider: int = Field(default=2, ge=1)


class ImageSettings(BaseModel):
    """Image validation limits and storage location."""

    max_image_bytes: int = 10 * 1024 * 1024
    max_avatar_bytes: int = 5 * 1024 * 1024
    storage_path: Path = Path("./data/metadata")


class EnrichmentSettings(BaseModel):
    """Defaults for the enrichment pipeline.

    These are only defaults - persisted metadata.* keys win when present.
    """

    auto_enrich_enabled: bool = False
    auto_search_enabled: bool = True
    confidence_threshold: float = 0.85
    auto_apply: bool = True
    provider_retry_attempts: int = Field(default=1, ge=0)

    @field_validator("confidence_threshold")
    @classmethod
    def _threshold_in_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("confidence_threshold must be between 0 and 1")
        return value


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_level: str = "INFO"
    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="ECHOMETA_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    musicbrainz: MusicBrainzSettings = Field(default_factory=MusicBrainzSettings)
    lastfm: LastfmSettings = Field(default_factory=LastfmSettings)
    fanart: FanartSettings = Field(default_factory=FanartSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    observability: ObservabilitySettings = Field(
        default_factory=ObservabilitySettings
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
