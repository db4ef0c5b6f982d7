"""create library, conflict, enrichment log and settings tables

Revision ID: aa1000000001
Revises:
Create Date: 2026-10-18 10:00:00.000000

Hey future me - THIS IS THE BASE SCHEMA!

Tables:
- library_artists / library_albums: the rows enrichment writes to. Image columns keep
  the SOURCE URL, the *_path columns point into the image store.
- metadata_conflicts: provider proposals waiting for a human. The partial unique index
  uq_metadata_conflicts_pending is what guarantees ONE pending row per
  (entity_id, field, provider). Resolved rows are not covered by it.
- enrichment_logs: append-only audit trail, one row per provider attempt per run.
- app_settings: metadata.* runtime overrides (API keys, thresholds, toggles).
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "aa1000000001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "library_artists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sort_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("mbid", sa.String(36), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("profile_image", sa.String(1024), nullable=True),
        sa.Column("profile_image_path", sa.String(1024), nullable=True),
        sa.Column("background_image", sa.String(1024), nullable=True),
        sa.Column("background_image_path", sa.String(1024), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_library_artists_mbid", "library_artists", ["mbid"])
    op.create_index("ix_library_artists_sort_name", "library_artists", ["sort_name"])

    op.create_table(
        "library_albums",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sort_name", sa.String(255), nullable=False, server_default=""),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("library_artists.id", ondelete="SET NULL"),
            nullable=True,
        ),
        # Release-group MBID, not a release
        sa.Column("mbid", sa.String(36), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("cover_image", sa.String(1024), nullable=True),
        sa.Column("cover_image_path", sa.String(1024), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_library_albums_mbid", "library_albums", ["mbid"])
    op.create_index("ix_library_albums_sort_name", "library_albums", ["sort_name"])
    op.create_index("ix_library_albums_artist_id", "library_albums", ["artist_id"])

    op.create_table(
        "metadata_conflicts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("entity_name", sa.String(255), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("field", sa.String(32), nullable=False),
        sa.Column("proposed_value", sa.JSON(), nullable=True),
        sa.Column("previous_value", sa.JSON(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(100), nullable=True),
    )
    op.create_index(
        "uq_metadata_conflicts_pending",
        "metadata_conflicts",
        ["entity_id", "field", "provider"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index(
        "ix_metadata_conflicts_status_priority",
        "metadata_conflicts",
        ["status", "priority"],
    )
    op.create_index(
        "ix_metadata_conflicts_entity",
        "metadata_conflicts",
        ["entity_type", "entity_id"],
    )

    op.create_table(
        "enrichment_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("run_id", sa.String(36), nullable=True),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_name", sa.String(255), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("metadata_type", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("fields_updated", sa.JSON(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("preview_url", sa.String(1024), nullable=True),
        sa.Column("processing_time_ms", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_enrichment_logs_run_id", "enrichment_logs", ["run_id"])
    op.create_index("ix_enrichment_logs_created_at", "enrichment_logs", ["created_at"])
    op.create_index(
        "ix_enrichment_logs_entity", "enrichment_logs", ["entity_type", "entity_id"]
    )
    op.create_index(
        "ix_enrichment_logs_provider_status", "enrichment_logs", ["provider", "status"]
    )

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("value_type", sa.String(20), nullable=False, server_default="string"),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_table("enrichment_logs")
    op.drop_table("metadata_conflicts")
    op.drop_table("library_albums")
    op.drop_table("library_artists")
