"""Conflict review: listing and resolving pending metadata proposals."""

import logging

from echometa.application.services.image_validator import ImageValidator
from echometa.domain.entities import (
    ConflictAction,
    ConflictFilters,
    ConflictStatus,
    EntityType,
    MetadataConflict,
)
from echometa.domain.exceptions import (
    ConflictAlreadyResolvedError,
    EntityNotFoundError,
    InfrastructureError,
    ValidationError,
)
from echometa.domain.ports import IImageDownloader, IImageStore, UnitOfWorkFactory

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


class ConflictService:
    """Human side of the conflict store.

    Hey future me - resolution is a compare-and-set on status='pending'. Accept
    applies the value in the SAME transaction as the status flip, so if the entity
    write fails the conflict stays pending, and if somebody else resolved it first
    the entity is never touched. Image conflicts are re-downloaded and re-validated
    before anything is written - the bytes may have changed since the run queued it.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        image_downloader: IImageDownloader,
        image_store: IImageStore,
        image_validator: ImageValidator | None = None,
    ) -> None:
        self._uow = uow_factory
        self._image_downloader = image_downloader
        self._image_store = image_store
        self._image_validator = image_validator or ImageValidator()

    async def list_conflicts(
        self, filters: ConflictFilters
    ) -> tuple[list[MetadataConflict], int]:
        if filters.skip < 0 or filters.take < 1 or filters.take > MAX_PAGE_SIZE:
            raise ValidationError(
                f"skip must be >= 0 and take between 1 and {MAX_PAGE_SIZE}"
            )
        async with self._uow() as uow:
            return await uow.conflicts.list_conflicts(filters)

    async def get_entity_conflicts(
        self, entity_type: EntityType, entity_id: str
    ) -> list[MetadataConflict]:
        async with self._uow() as uow:
            return await uow.conflicts.list_for_entity(entity_type, entity_id)

    async def get(self, conflict_id: str) -> MetadataConflict:
        async with self._uow() as uow:
            conflict = await uow.conflicts.get(conflict_id)
        if conflict is None:
            raise EntityNotFoundError("conflict", conflict_id)
        return conflict

    async def accept(self, conflict_id: str, resolved_by: str | None = None) -> MetadataConflict:
        return await self.resolve(conflict_id, ConflictAction.ACCEPT, resolved_by)

    async def reject(self, conflict_id: str, resolved_by: str | None = None) -> MetadataConflict:
        return await self.resolve(conflict_id, ConflictAction.REJECT, resolved_by)

    async def ignore(self, conflict_id: str, resolved_by: str | None = None) -> MetadataConflict:
        return await self.resolve(conflict_id, ConflictAction.IGNORE, resolved_by)

    async def resolve(
        self,
        conflict_id: str,
        action: ConflictAction | str,
        resolved_by: str | None = None,
    ) -> MetadataConflict:
        """Move a pending conflict to its terminal status.

        Raises:
            ValidationError: unknown action
            EntityNotFoundError: no such conflict
            ConflictAlreadyResolvedError: the conflict is no longer pending
            ImageProcessingError: accepted image failed re-validation (stays pending)
        """
        try:
            action = ConflictAction(action)
        except ValueError as e:
            raise ValidationError(f"Unknown conflict action '{action}'") from e

        conflict = await self.get(conflict_id)
        if not conflict.is_pending:
            raise ConflictAlreadyResolvedError(conflict_id, conflict.status.value)

        stored_path: str | None = None
        if action is ConflictAction.ACCEPT and conflict.field.is_image:
            stored_path = await self._store_image(conflict)

        async with self._uow() as uow:
            changed = await uow.conflicts.transition(
                conflict_id, action.target_status, resolved_by
            )
            if not changed:
                current = await uow.conflicts.get(conflict_id)
                status = current.status.value if current else ConflictStatus.PENDING.value
                raise ConflictAlreadyResolvedError(conflict_id, status)

            if action is ConflictAction.ACCEPT:
                await uow.entities.apply_field(
                    conflict.entity_type,
                    conflict.entity_id,
                    conflict.field,
                    conflict.proposed_value,
                    stored_path,
                )
            resolved = await uow.conflicts.get(conflict_id)

        logger.info(
            "Conflict %s (%s %s from %s) %s",
            conflict_id,
            conflict.entity_name,
            conflict.field.value,
            conflict.provider.value,
            action.target_status.value,
        )
        if resolved is None:
            # Row deleted between the transition and the re-read
            raise EntityNotFoundError("conflict", conflict_id)
        return resolved

    async def _store_image(self, conflict: MetadataConflict) -> str:
        download = await self._image_downloader.download(
            conflict.provider, str(conflict.proposed_value)
        )
        validation = await self._image_validator.validate_download(download, conflict.field)
        if validation.error is not None:
            logger.warning(
                "Accepted image for conflict %s failed re-validation: %s",
                conflict.id,
                validation.error.reason.value,
            )
            raise validation.error
        try:
            return await self._image_store.save(
                conflict.entity_type,
                conflict.entity_id,
                conflict.field,
                validation.content,
                validation.mime_type,
            )
        except OSError as e:
            raise InfrastructureError(f"Image store unavailable: {e}") from e
