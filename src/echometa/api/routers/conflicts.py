"""Conflict review endpoints.

Route prefix: /api/metadata/conflicts/*
"""

from fastapi import APIRouter, Body, Depends, Query

from echometa.api.dependencies import get_conflict_service
from echometa.api.schemas import (
    ConflictListResponse,
    ConflictResponse,
    ResolveConflictRequest,
)
from echometa.application.services.conflict_service import ConflictService
from echometa.domain.entities import (
    ConflictFilters,
    ConflictStatus,
    EntityType,
    ProviderName,
)

router = APIRouter(prefix="/conflicts", tags=["Conflicts"])


@router.get("", response_model=ConflictListResponse)
async def list_conflicts(
    entity_type: EntityType | None = Query(default=None, alias="entityType"),
    provider: ProviderName | None = Query(default=None),
    conflict_status: ConflictStatus | None = Query(
        default=ConflictStatus.PENDING, alias="status"
    ),
    entity_id: str | None = Query(default=None, alias="entityId"),
    skip: int = Query(default=0),
    take: int = Query(default=50),
    service: ConflictService = Depends(get_conflict_service),
) -> ConflictListResponse:
    """Conflicts ordered by priority (identifiers first), newest first within one."""
    filters = ConflictFilters(
        entity_type=entity_type,
        provider=provider,
        status=conflict_status,
        entity_id=entity_id,
        skip=skip,
        take=take,
    )
    conflicts, total = await service.list_conflicts(filters)
    return ConflictListResponse(
        items=[ConflictResponse.from_entity(c) for c in conflicts],
        total=total,
        skip=skip,
        take=take,
    )


@router.get(
    "/entity/{entity_type}/{entity_id}", response_model=list[ConflictResponse]
)
async def get_entity_conflicts(
    entity_type: EntityType,
    entity_id: str,
    service: ConflictService = Depends(get_conflict_service),
) -> list[ConflictResponse]:
    conflicts = await service.get_entity_conflicts(entity_type, entity_id)
    return [ConflictResponse.from_entity(c) for c in conflicts]


@router.get("/{conflict_id}", response_model=ConflictResponse)
async def get_conflict(
    conflict_id: str,
    service: ConflictService = Depends(get_conflict_service),
) -> ConflictResponse:
    return ConflictResponse.from_entity(await service.get(conflict_id))


@router.post("/{conflict_id}/{action}", response_model=ConflictResponse)
async def resolve_conflict(
    conflict_id: str,
    action: str,
    body: ResolveConflictRequest | None = Body(default=None),
    service: ConflictService = Depends(get_conflict_service),
) -> ConflictResponse:
    """Accept, reject or ignore a pending conflict. 409 when it is no longer pending."""
    resolved_by = body.resolved_by if body else None
    resolved = await service.resolve(conflict_id, action, resolved_by)
    return ConflictResponse.from_entity(resolved)
