"""Progress notifier: turns run milestones into enrichment:* events."""

import logging
from typing import Any

from echometa.domain.entities import EnrichmentTarget, EntityType
from echometa.domain.ports import EnrichmentEvent, IEventPublisher

logger = logging.getLogger(__name__)

EVENT_STARTED = "enrichment:started"
EVENT_PROGRESS = "enrichment:progress"
EVENT_COMPLETED = "enrichment:completed"
EVENT_ERROR = "enrichment:error"


class ProgressNotifier:
    """Fire-and-forget event publishing for the orchestrator.

    Hey future me - the run NEVER waits on this and NEVER fails because of it.
    A publisher that blows up gets logged and ignored for that event; the next
    event is tried again. Payload keys are camelCase because they go straight
    to the browser.
    """

    def __init__(self, publisher: IEventPublisher | None = None) -> None:
        self._publisher = publisher

    def _emit(self, name: str, base: dict[str, Any], **fields: Any) -> None:
        if self._publisher is None:
            return
        event = EnrichmentEvent(name=name, payload={**base, **fields})
        try:
            self._publisher.publish(event)
        except Exception:
            logger.warning("Failed to publish %s event", name, exc_info=True)

    @staticmethod
    def _base(
        target: EnrichmentTarget | None,
        entity_type: EntityType,
        entity_id: str,
        run_id: str,
    ) -> dict[str, Any]:
        return {
            "runId": run_id,
            "entityType": entity_type.value,
            "entityId": entity_id,
            "entityName": target.name if target else None,
        }

    def started(
        self,
        entity_type: EntityType,
        entity_id: str,
        run_id: str,
        target: EnrichmentTarget | None = None,
    ) -> None:
        self._emit(EVENT_STARTED, self._base(target, entity_type, entity_id, run_id))

    def progress(
        self,
        target: EnrichmentTarget,
        run_id: str,
        step: str,
        current: int,
        total: int,
    ) -> None:
        percentage = round(current / total * 100) if total else 100
        self._emit(
            EVENT_PROGRESS,
            self._base(target, target.entity_type, target.entity_id, run_id),
            step=step,
            current=current,
            total=total,
            percentage=percentage,
        )

    def completed(
        self,
        target: EnrichmentTarget,
        run_id: str,
        fields_updated: list[str],
        duration_ms: int,
        status: str,
        conflicts_queued: int = 0,
        failed_providers: list[str] | None = None,
    ) -> None:
        self._emit(
            EVENT_COMPLETED,
            self._base(target, target.entity_type, target.entity_id, run_id),
            status=status,
            bioUpdated="bio" in fields_updated,
            imagesUpdated=any(
                name in fields_updated for name in ("profile_image", "background_image")
            ),
            coverUpdated="cover_image" in fields_updated,
            fieldsUpdated=fields_updated,
            conflictsQueued=conflicts_queued,
            failedProviders=failed_providers or [],
            duration=duration_ms,
        )

    def error(
        self,
        entity_type: EntityType,
        entity_id: str,
        run_id: str,
        message: str,
        target: EnrichmentTarget | None = None,
    ) -> None:
        self._emit(
            EVENT_ERROR,
            self._base(target, entity_type, entity_id, run_id),
            error=message,
        )
