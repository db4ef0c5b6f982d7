"""Structured log message templates for consistent, human-readable logging.

Hey future me - instead of "ExternalApiError: 503" somewhere in the logs we get:

    🔴 lastfm Provider Failed
    ├─ Entity: album 42 (Abbey Road)
    ├─ Reason: Service Unavailable (HTTP 503)
    └─ 💡 Field stays as-is this run; trigger enrichment again later

Principles: icon first, then what happened, then context, then an actionable hint.

Usage:
    logger.warning(LogMessages.provider_failed(
        provider="lastfm", entity="album 42 (Abbey Road)", error="HTTP 503"
    ))
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class LogTemplate:
    """A reusable log message template with placeholders.

    Field values and the hint may contain {placeholders}; they are only
    formatted when kwargs are passed, so values holding user data with
    braces (album titles, bios) are printed verbatim.
    """

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def _fill(self, template: str, kwargs: dict[str, Any]) -> str:
        if not kwargs:
            return template
        try:
            return template.format(**kwargs)
        except (KeyError, IndexError, ValueError) as e:
            return f"<missing: {e}>"

    def format(self, **kwargs: Any) -> str:
        lines = [f"{self.icon} {self.title}"]

        field_items = list(self.fields.items())
        for i, (key, value_template) in enumerate(field_items):
            # Last field uses └─ instead of ├─
            prefix = "└─" if i == len(field_items) - 1 and not self.hint else "├─"
            lines.append(f"{prefix} {key}: {self._fill(value_template, kwargs)}")

        if self.hint:
            lines.append(f"└─ 💡 {self._fill(self.hint, kwargs)}")

        return "\n".join(lines)


class LogMessages:
    """Collection of standardized log message templates.

    Template categories:
    - Provider calls (failure, timeout, rate limit)
    - Field decisions (image rejected, conflict queued)
    - Run lifecycle (completed, aborted)
    - Configuration
    """

    # === Provider calls ===

    @staticmethod
    def provider_failed(
        provider: str,
        entity: str,
        error: str,
        hint: str | None = None,
    ) -> str:
        """Format a provider failure message.

        Args:
            provider: Provider label (e.g., "lastfm")
            entity: Human readable entity ("album 42 (Abbey Road)")
            error: Error message
            hint: Custom troubleshooting hint
        """
        template = LogTemplate(
            icon="🔴",
            title=f"{provider} Provider Failed",
            fields={"Entity": entity, "Reason": error},
            hint=hint or "Field stays as-is this run; trigger enrichment again later",
        )
        return template.format()

    @staticmethod
    def provider_timeout(provider: str, timeout: float, url: str | None = None) -> str:
        fields = {"Timeout": f"{timeout}s"}
        if url:
            fields["Target"] = url
        template = LogTemplate(
            icon="⏱️",
            title=f"{provider} Request Timeout",
            fields=fields,
            hint=f"Increase ECHOMETA_HTTP__DEFAULT_TIMEOUT or check {provider} status",
        )
        return template.format()

    @staticmethod
    def rate_limited(provider: str, attempt: int, max_attempts: int) -> str:
        template = LogTemplate(
            icon="⚠️",
            title=f"{provider} Rate Limited",
            fields={"Attempt": f"{attempt}/{max_attempts}"},
            hint="Backing off before retrying this provider",
        )
        return template.format()

    # === Field decisions ===

    @staticmethod
    def image_rejected(provider: str, field: str, reason: str, url: str) -> str:
        template = LogTemplate(
            icon="🖼️",
            title="Image Rejected",
            fields={
                "Provider": provider,
                "Field": field,
                "Reason": reason,
                "Source": url,
            },
            hint="Field is neither applied nor queued",
        )
        return template.format()

    @staticmethod
    def conflict_queued(
        provider: str,
        entity: str,
        field: str,
        confidence: float | None = None,
    ) -> str:
        fields = {"Provider": provider, "Entity": entity, "Field": field}
        if confidence is not None:
            fields["Confidence"] = f"{confidence:.2f}"
        template = LogTemplate(
            icon="📝",
            title="Metadata Conflict Queued",
            fields=fields,
            hint="Review it under /api/metadata/conflicts",
        )
        return template.format()

    # === Run lifecycle ===

    @staticmethod
    def enrichment_completed(
        entity: str,
        status: str,
        fields_updated: list[str],
        conflicts: int,
        duration_ms: int,
    ) -> str:
        template = LogTemplate(
            icon="✅" if status == "success" else "⚠️",
            title="Enrichment Completed",
            fields={
                "Entity": entity,
                "Status": status,
                "Updated": ", ".join(fields_updated) or "-",
                "Conflicts": str(conflicts),
                "Duration": f"{duration_ms}ms",
            },
        )
        return template.format()

    @staticmethod
    def enrichment_aborted(entity: str, reason: str) -> str:
        template = LogTemplate(
            icon="🛑",
            title="Enrichment Aborted",
            fields={"Entity": entity, "Reason": reason},
        )
        return template.format()

    # === Configuration ===

    @staticmethod
    def config_invalid(
        setting: str,
        value: Any,
        expected: str,
        hint: str | None = None,
    ) -> str:
        template = LogTemplate(
            icon="⚙️",
            title="Invalid Configuration",
            fields={
                "Setting": setting,
                "Value": str(value),
                "Expected": expected,
            },
            hint=hint or "Falling back to the default value",
        )
        return template.format()
