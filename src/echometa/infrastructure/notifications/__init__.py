"""Progress event delivery."""

from echometa.infrastructure.notifications.event_bus import EnrichmentEventBus

__all__ = ["EnrichmentEventBus"]
