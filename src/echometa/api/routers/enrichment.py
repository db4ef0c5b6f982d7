"""Enrichment endpoints: trigger, cancel, history, stats and the live event stream.

Route prefix: /api/metadata/enrichment/*
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sse_starlette.sse import EventSourceResponse

from echometa.api.dependencies import (
    get_event_bus,
    get_orchestrator,
    get_stats_service,
)
from echometa.api.schemas import (
    EnrichmentLogResponse,
    EnrichmentRunResponse,
    HistoryResponse,
)
from echometa.application.services.enrichment_orchestrator import EnrichmentOrchestrator
from echometa.application.services.enrichment_stats_service import EnrichmentStatsService
from echometa.domain.entities import (
    EnrichmentLogStatus,
    EntityType,
    HistoryFilters,
    ProviderName,
)
from echometa.infrastructure.notifications import EnrichmentEventBus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrichment", tags=["Enrichment"])

# How long the SSE loop waits for an event before re-checking the connection
_SSE_POLL_SECONDS = 1.0


@router.post(
    "/{entity_type}/{entity_id}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=EnrichmentRunResponse,
)
async def trigger_enrichment(
    entity_type: str,
    entity_id: str,
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> EnrichmentRunResponse:
    """Start enrichment for one entity. Progress arrives over /events.

    Unknown entity types are a 422 from the orchestrator (not a FastAPI enum
    error) so the body has the same shape as every other domain error.
    """
    run = await orchestrator.trigger_enrichment(entity_type, entity_id)
    return EnrichmentRunResponse.from_entity(run)


@router.post("/{entity_type}/{entity_id}/cancel")
async def cancel_enrichment(
    entity_type: EntityType,
    entity_id: str,
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    cancelled = orchestrator.cancel(entity_type, entity_id)
    return {"cancelled": cancelled}


@router.get("/active", response_model=list[EnrichmentRunResponse])
async def list_active_runs(
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
) -> list[EnrichmentRunResponse]:
    return [EnrichmentRunResponse.from_entity(run) for run in orchestrator.active_runs()]


@router.get("/history", response_model=HistoryResponse)
async def list_history(
    entity_type: EntityType | None = Query(default=None, alias="entityType"),
    provider: ProviderName | None = Query(default=None),
    log_status: EnrichmentLogStatus | None = Query(default=None, alias="status"),
    entity_id: str | None = Query(default=None, alias="entityId"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    skip: int = Query(default=0),
    take: int = Query(default=50),
    service: EnrichmentStatsService = Depends(get_stats_service),
) -> HistoryResponse:
    """Paged enrichment log, newest first."""
    filters = HistoryFilters(
        entity_type=entity_type,
        provider=provider,
        status=log_status,
        entity_id=entity_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        take=take,
    )
    logs, total = await service.list_history(filters)
    return HistoryResponse(
        items=[EnrichmentLogResponse.from_entity(log) for log in logs],
        total=total,
        skip=skip,
        take=take,
    )


@router.get("/stats")
async def get_stats(
    period: str = Query(default="all"),
    service: EnrichmentStatsService = Depends(get_stats_service),
) -> dict[str, Any]:
    stats = await service.get_stats(period)
    return stats.to_dict()


@router.get("/events")
async def enrichment_events(
    request: Request,
    bus: EnrichmentEventBus = Depends(get_event_bus),
) -> EventSourceResponse:
    """Server-Sent Events stream of enrichment:* events.

    Example JS client:
    ```javascript
    const source = new EventSource('/api/metadata/enrichment/events');
    source.addEventListener('enrichment:completed', (event) => {
        const data = JSON.parse(event.data);
        refreshEntity(data.entityType, data.entityId);
    });
    ```
    """
    # Registered before the response starts so no event between now and the
    # first iteration is lost
    queue = bus.open_queue()

    async def event_generator():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=_SSE_POLL_SECONDS)
                except TimeoutError:
                    continue
                yield {
                    "event": event.name,
                    "data": json.dumps(
                        {**event.payload, "timestamp": event.timestamp.isoformat()}
                    ),
                }
        finally:
            bus.close_queue(queue)
            logger.debug("SSE subscriber left (%d remaining)", bus.subscriber_count)

    return EventSourceResponse(event_generator())
