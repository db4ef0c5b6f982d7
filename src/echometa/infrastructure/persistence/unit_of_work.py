"""Unit of work over one database session."""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from echometa.domain.exceptions import InfrastructureError
from echometa.infrastructure.persistence.database import Database
from echometa.infrastructure.persistence.repositories import (
    AppSettingsRepository,
    EnrichmentLogRepository,
    LibraryEntityRepository,
    MetadataConflictRepository,
)


@dataclass
class EnrichmentUnitOfWork:
    """All repositories bound to the same session (and so the same transaction)."""

    session: AsyncSession
    entities: LibraryEntityRepository
    conflicts: MetadataConflictRepository
    logs: EnrichmentLogRepository
    settings: AppSettingsRepository

    @classmethod
    def for_session(cls, session: AsyncSession) -> "EnrichmentUnitOfWork":
        return cls(
            session=session,
            entities=LibraryEntityRepository(session),
            conflicts=MetadataConflictRepository(session),
            logs=EnrichmentLogRepository(session),
            settings=AppSettingsRepository(session),
        )


def unit_of_work_factory(
    database: Database,
) -> Callable[[], AbstractAsyncContextManager[EnrichmentUnitOfWork]]:
    """Build the factory application services open transactions with.

    Commit happens on clean exit of the block, rollback on any exception
    (Database.session_scope semantics). Database failures surface as
    InfrastructureError so callers never handle driver exceptions.
    """

    @asynccontextmanager
    async def _scope() -> AsyncGenerator[EnrichmentUnitOfWork, None]:
        try:
            async with database.session_scope() as session:
                yield EnrichmentUnitOfWork.for_session(session)
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Database operation failed: {e}") from e

    return _scope
