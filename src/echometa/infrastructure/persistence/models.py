"""SQLAlchemy ORM models for echometa."""

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! UTC datetimes come back naive.
# ALWAYS run DB datetimes through this before comparing with datetime.now(UTC), otherwise
# "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Yo, these two library tables are the ONLY rows enrichment writes to. The image columns
# keep the SOURCE URL (what providers propose and conflicts compare against), the *_path
# columns where LocalImageStore put the validated bytes.
class LibraryArtistModel(Base):
    """Artist row of the local music library."""

    __tablename__ = "library_artists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    mbid: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    profile_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    profile_image_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    background_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    background_image_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (Index("ix_library_artists_sort_name", "sort_name"),)


class LibraryAlbumModel(Base):
    """Album row of the local music library (mbid is a release-group id)."""

    __tablename__ = "library_albums"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    artist_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("library_artists.id", ondelete="SET NULL"), nullable=True
    )
    mbid: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    cover_image_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_library_albums_sort_name", "sort_name"),
        Index("ix_library_albums_artist_id", "artist_id"),
    )


# Listen up, the partial unique index is what makes "at most ONE pending conflict per
# (entity, field, provider)" hold even with concurrent runs. Resolved rows are excluded,
# so history can keep as many accepted/rejected rows for the same key as it wants.
class MetadataConflictModel(Base):
    """Provider proposal awaiting human review."""

    __tablename__ = "metadata_conflicts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    field: Mapped[str] = mapped_column(String(32), nullable=False)
    proposed_value: Mapped[Any] = mapped_column(JSON(none_as_null=True), nullable=True)
    previous_value: Mapped[Any] = mapped_column(JSON(none_as_null=True), nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    resolved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index(
            "uq_metadata_conflicts_pending",
            "entity_id",
            "field",
            "provider",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("ix_metadata_conflicts_status_priority", "status", "priority"),
        Index("ix_metadata_conflicts_entity", "entity_type", "entity_id"),
    )


class EnrichmentLogModel(Base):
    """Append-only enrichment audit row (one per provider attempt per run)."""

    __tablename__ = "enrichment_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    run_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    metadata_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    fields_updated: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    preview_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("ix_enrichment_logs_created_at", "created_at"),
        Index("ix_enrichment_logs_entity", "entity_type", "entity_id"),
        Index("ix_enrichment_logs_provider_status", "provider", "status"),
    )


class AppSettingsModel(Base):
    """Dynamic application settings stored in DB.

    Key-value store for runtime configuration, changeable without restart.

    Example keys:
    - 'metadata.auto_enrich.enabled' (boolean)
    - 'metadata.lastfm.api_key' (string)
    - 'metadata.mbid_auto_search.confidence_threshold' (float)
    """

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Type hint: 'string', 'boolean', 'float', 'json'
    value_type: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="string", default="string"
    )
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, server_default="general", default="general"
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=utc_now,
    )
