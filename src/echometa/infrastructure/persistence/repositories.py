"""Repository implementations for echometa."""

from dataclasses import replace
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from echometa.domain.entities import (
    ConflictFilters,
    ConflictStatus,
    EnrichmentLog,
    EnrichmentLogStatus,
    EnrichmentTarget,
    EntityType,
    HistoryFilters,
    MetadataConflict,
    MetadataField,
    ProviderName,
    fields_for,
    utc_now,
)
from echometa.domain.exceptions import EntityNotFoundError
from echometa.domain.ports import (
    IAppSettingsRepository,
    IEnrichmentLogRepository,
    ILibraryEntityRepository,
    IMetadataConflictRepository,
)
from echometa.domain.value_objects import normalize_for_sorting
from echometa.infrastructure.persistence.models import (
    AppSettingsModel,
    EnrichmentLogModel,
    LibraryAlbumModel,
    LibraryArtistModel,
    MetadataConflictModel,
    ensure_utc_aware,
)

# MetadataField -> column name. Image fields additionally have "<column>_path".
_COLUMNS: dict[MetadataField, str] = {
    MetadataField.MBID: "mbid",
    MetadataField.BIO: "bio",
    MetadataField.TAGS: "tags",
    MetadataField.PROFILE_IMAGE: "profile_image",
    MetadataField.BACKGROUND_IMAGE: "background_image",
    MetadataField.COVER_IMAGE: "cover_image",
}


class LibraryEntityRepository(ILibraryEntityRepository):
    """Reads and writes the library rows enrichment targets."""

    # Hey future me, this is the Repository pattern! The session is injected and NOT committed
    # here - the unit of work (session_scope) commits. We only stage changes and flush.
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_artist(self, name: str, mbid: str | None = None, **values: Any) -> str:
        """Insert a library artist (scanner seam, also used by tests)."""
        model = LibraryArtistModel(
            name=name, sort_name=normalize_for_sorting(name), mbid=mbid, **values
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def add_album(
        self,
        name: str,
        artist_id: str | None = None,
        mbid: str | None = None,
        **values: Any,
    ) -> str:
        """Insert a library album (scanner seam, also used by tests)."""
        model = LibraryAlbumModel(
            name=name,
            sort_name=normalize_for_sorting(name),
            artist_id=artist_id,
            mbid=mbid,
            **values,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def _get_model(
        self, entity_type: EntityType, entity_id: str
    ) -> LibraryArtistModel | LibraryAlbumModel | None:
        model_cls = LibraryArtistModel if entity_type is EntityType.ARTIST else LibraryAlbumModel
        return await self.session.get(model_cls, entity_id)

    async def get_target(
        self, entity_type: EntityType, entity_id: str
    ) -> EnrichmentTarget | None:
        model = await self._get_model(entity_type, entity_id)
        if model is None:
            return None

        artist_name: str | None = None
        if isinstance(model, LibraryAlbumModel) and model.artist_id:
            artist = await self.session.get(LibraryArtistModel, model.artist_id)
            artist_name = artist.name if artist else None

        values = {
            metadata_field: getattr(model, _COLUMNS[metadata_field])
            for metadata_field in fields_for(entity_type)
        }
        return EnrichmentTarget(
            entity_type=entity_type,
            entity_id=model.id,
            name=model.name,
            artist_name=artist_name,
            values=values,
        )

    async def apply_field(
        self,
        entity_type: EntityType,
        entity_id: str,
        metadata_field: MetadataField,
        value: Any,
        stored_path: str | None = None,
    ) -> None:
        if metadata_field not in fields_for(entity_type):
            raise ValueError(f"{entity_type.value} has no field {metadata_field.value}")

        model = await self._get_model(entity_type, entity_id)
        if model is None:
            raise EntityNotFoundError(entity_type.value, entity_id)

        column = _COLUMNS[metadata_field]
        setattr(model, column, list(value) if metadata_field is MetadataField.TAGS else value)
        if metadata_field.is_image:
            setattr(model, f"{column}_path", stored_path)
        model.updated_at = utc_now()
        await self.session.flush()


def _to_conflict(model: MetadataConflictModel) -> MetadataConflict:
    return MetadataConflict(
        id=model.id,
        entity_type=EntityType(model.entity_type),
        entity_id=model.entity_id,
        entity_name=model.entity_name,
        provider=ProviderName(model.provider),
        field=MetadataField(model.field),
        proposed_value=model.proposed_value,
        previous_value=model.previous_value,
        confidence=model.confidence,
        status=ConflictStatus(model.status),
        priority=model.priority,
        created_at=ensure_utc_aware(model.created_at),
        resolved_at=ensure_utc_aware(model.resolved_at) if model.resolved_at else None,
        resolved_by=model.resolved_by,
    )


class MetadataConflictRepository(IMetadataConflictRepository):
    """Conflict store with supersede and compare-and-set semantics."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _pending_id(
        self, entity_id: str, metadata_field: MetadataField, provider: ProviderName
    ) -> str | None:
        stmt = select(MetadataConflictModel.id).where(
            MetadataConflictModel.entity_id == entity_id,
            MetadataConflictModel.field == metadata_field.value,
            MetadataConflictModel.provider == provider.value,
            MetadataConflictModel.status == ConflictStatus.PENDING.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # Listen up, supersede is an UPDATE guarded by status='pending', same as transition().
    # If a human resolves the old row between our SELECT and this UPDATE, rowcount is 0 and
    # we insert a fresh pending row instead - so a concurrent accept and a supersede can never
    # both win against the same row. The partial unique index backs this up at the DB level.
    async def upsert_pending(self, conflict: MetadataConflict) -> MetadataConflict:
        existing_id = await self._pending_id(
            conflict.entity_id, conflict.field, conflict.provider
        )
        if existing_id is not None:
            stmt = (
                update(MetadataConflictModel)
                .where(
                    MetadataConflictModel.id == existing_id,
                    MetadataConflictModel.status == ConflictStatus.PENDING.value,
                )
                .values(
                    entity_name=conflict.entity_name,
                    proposed_value=conflict.proposed_value,
                    previous_value=conflict.previous_value,
                    confidence=conflict.confidence,
                    priority=conflict.priority,
                )
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            if result.rowcount == 1:  # type: ignore[attr-defined]
                return replace(conflict, id=existing_id, status=ConflictStatus.PENDING)

        self.session.add(
            MetadataConflictModel(
                id=conflict.id,
                entity_type=conflict.entity_type.value,
                entity_id=conflict.entity_id,
                entity_name=conflict.entity_name,
                provider=conflict.provider.value,
                field=conflict.field.value,
                proposed_value=conflict.proposed_value,
                previous_value=conflict.previous_value,
                confidence=conflict.confidence,
                status=ConflictStatus.PENDING.value,
                priority=conflict.priority,
                created_at=conflict.created_at,
            )
        )
        await self.session.flush()
        return conflict

    async def get(self, conflict_id: str) -> MetadataConflict | None:
        stmt = select(MetadataConflictModel).where(MetadataConflictModel.id == conflict_id)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _to_conflict(model) if model else None

    async def transition(
        self,
        conflict_id: str,
        status: ConflictStatus,
        resolved_by: str | None = None,
    ) -> bool:
        stmt = (
            update(MetadataConflictModel)
            .where(
                MetadataConflictModel.id == conflict_id,
                MetadataConflictModel.status == ConflictStatus.PENDING.value,
            )
            .values(status=status.value, resolved_at=utc_now(), resolved_by=resolved_by)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount == 1)  # type: ignore[attr-defined]

    async def list_conflicts(
        self, filters: ConflictFilters
    ) -> tuple[list[MetadataConflict], int]:
        stmt = select(MetadataConflictModel)
        if filters.status is not None:
            stmt = stmt.where(MetadataConflictModel.status == filters.status.value)
        if filters.entity_type is not None:
            stmt = stmt.where(MetadataConflictModel.entity_type == filters.entity_type.value)
        if filters.provider is not None:
            stmt = stmt.where(MetadataConflictModel.provider == filters.provider.value)
        if filters.entity_id is not None:
            stmt = stmt.where(MetadataConflictModel.entity_id == filters.entity_id)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            stmt.order_by(
                MetadataConflictModel.priority.asc(),
                MetadataConflictModel.created_at.desc(),
            )
            .offset(filters.skip)
            .limit(filters.take)
        )
        result = await self.session.execute(stmt)
        return [_to_conflict(model) for model in result.scalars().all()], int(total)

    async def list_for_entity(
        self, entity_type: EntityType, entity_id: str
    ) -> list[MetadataConflict]:
        stmt = (
            select(MetadataConflictModel)
            .where(
                MetadataConflictModel.entity_type == entity_type.value,
                MetadataConflictModel.entity_id == entity_id,
                MetadataConflictModel.status == ConflictStatus.PENDING.value,
            )
            .order_by(MetadataConflictModel.priority.asc(), MetadataConflictModel.field)
        )
        result = await self.session.execute(stmt)
        return [_to_conflict(model) for model in result.scalars().all()]

    async def is_dismissed(
        self,
        entity_id: str,
        metadata_field: MetadataField,
        provider: ProviderName,
        proposed_value: Any,
    ) -> bool:
        # JSON equality is not portable across backends, so compare in Python
        stmt = select(MetadataConflictModel.proposed_value).where(
            MetadataConflictModel.entity_id == entity_id,
            MetadataConflictModel.field == metadata_field.value,
            MetadataConflictModel.provider == provider.value,
            MetadataConflictModel.status.in_(
                [ConflictStatus.REJECTED.value, ConflictStatus.IGNORED.value]
            ),
        )
        result = await self.session.execute(stmt)
        return any(value == proposed_value for value in result.scalars().all())


def _to_log(model: EnrichmentLogModel) -> EnrichmentLog:
    return EnrichmentLog(
        id=model.id,
        run_id=model.run_id,
        entity_id=model.entity_id,
        entity_type=EntityType(model.entity_type),
        entity_name=model.entity_name,
        provider=ProviderName(model.provider),
        metadata_type=model.metadata_type,
        status=EnrichmentLogStatus(model.status),
        fields_updated=list(model.fields_updated or []),
        error_message=model.error_message,
        preview_url=model.preview_url,
        processing_time_ms=model.processing_time_ms,
        created_at=ensure_utc_aware(model.created_at),
    )


class EnrichmentLogRepository(IEnrichmentLogRepository):
    """Append-only enrichment audit trail."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, log: EnrichmentLog) -> EnrichmentLog:
        self.session.add(
            EnrichmentLogModel(
                id=log.id,
                run_id=log.run_id,
                entity_id=log.entity_id,
                entity_type=log.entity_type.value,
                entity_name=log.entity_name,
                provider=log.provider.value,
                metadata_type=log.metadata_type,
                status=log.status.value,
                fields_updated=list(log.fields_updated),
                error_message=log.error_message,
                preview_url=log.preview_url,
                processing_time_ms=log.processing_time_ms,
                created_at=log.created_at,
            )
        )
        await self.session.flush()
        return log

    async def list_history(
        self, filters: HistoryFilters
    ) -> tuple[list[EnrichmentLog], int]:
        stmt = select(EnrichmentLogModel)
        if filters.entity_type is not None:
            stmt = stmt.where(EnrichmentLogModel.entity_type == filters.entity_type.value)
        if filters.provider is not None:
            stmt = stmt.where(EnrichmentLogModel.provider == filters.provider.value)
        if filters.status is not None:
            stmt = stmt.where(EnrichmentLogModel.status == filters.status.value)
        if filters.entity_id is not None:
            stmt = stmt.where(EnrichmentLogModel.entity_id == filters.entity_id)
        if filters.start_date is not None:
            stmt = stmt.where(EnrichmentLogModel.created_at >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(EnrichmentLogModel.created_at <= filters.end_date)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            stmt.order_by(EnrichmentLogModel.created_at.desc())
            .offset(filters.skip)
            .limit(filters.take)
        )
        result = await self.session.execute(stmt)
        return [_to_log(model) for model in result.scalars().all()], int(total)

    async def list_since(self, since: datetime | None) -> list[EnrichmentLog]:
        stmt = select(EnrichmentLogModel)
        if since is not None:
            stmt = stmt.where(EnrichmentLogModel.created_at >= since)
        result = await self.session.execute(stmt.order_by(EnrichmentLogModel.created_at))
        return [_to_log(model) for model in result.scalars().all()]


class AppSettingsRepository(IAppSettingsRepository):
    """Key/value settings rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_all(self, prefix: str = "") -> dict[str, str]:
        stmt = select(AppSettingsModel)
        if prefix:
            stmt = stmt.where(AppSettingsModel.key.startswith(prefix))
        result = await self.session.execute(stmt)
        return {
            model.key: model.value
            for model in result.scalars().all()
            if model.value is not None
        }

    async def set(
        self,
        key: str,
        value: str,
        value_type: str = "string",
        category: str = "metadata",
    ) -> None:
        model = await self.session.get(AppSettingsModel, key)
        if model is None:
            self.session.add(
                AppSettingsModel(
                    key=key, value=value, value_type=value_type, category=category
                )
            )
        else:
            model.value = value
            model.value_type = value_type
        await self.session.flush()
