"""Metadata settings: env defaults overlaid with persisted app_settings rows.

Hey future me - env (pydantic-settings) gives the DEFAULTS, the app_settings table
gives what an admin changed at runtime. load_config() merges both into the frozen
EnrichmentConfig the orchestrator runs with. A garbage value in the table must not
take enrichment down, so bad stored values log a warning and fall back; bad values
coming IN through update_setting() are rejected instead.
"""

import logging
from dataclasses import dataclass
from typing import Any

from echometa.config.settings import Settings
from echometa.domain.entities import (
    AutoSearchSettings,
    EnrichmentConfig,
    ProviderConfig,
    ProviderName,
)
from echometa.domain.exceptions import ValidationError
from echometa.domain.ports import UnitOfWorkFactory
from echometa.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

KEY_PREFIX = "metadata."
AUTO_ENRICH_ENABLED = "metadata.auto_enrich.enabled"
LASTFM_API_KEY = "metadata.lastfm.api_key"
FANART_API_KEY = "metadata.fanart.api_key"
AUTO_SEARCH_ENABLED = "metadata.mbid_auto_search.enabled"
AUTO_SEARCH_THRESHOLD = "metadata.mbid_auto_search.confidence_threshold"
AUTO_SEARCH_AUTO_APPLY = "metadata.mbid_auto_search.auto_apply"

BOOLEAN_KEYS = frozenset(
    {AUTO_ENRICH_ENABLED, AUTO_SEARCH_ENABLED, AUTO_SEARCH_AUTO_APPLY}
    | {f"metadata.{name.value}.enabled" for name in ProviderName}
)
FLOAT_KEYS = frozenset({AUTO_SEARCH_THRESHOLD})
SECRET_KEYS = frozenset({LASTFM_API_KEY, FANART_API_KEY})
KNOWN_KEYS = BOOLEAN_KEYS | FLOAT_KEYS | SECRET_KEYS

MIN_API_KEY_LENGTH = 10
LASTFM_API_KEY_LENGTH = 32

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def parse_threshold(raw: str) -> float:
    value = float(raw)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"threshold {value} outside [0, 1]")
    return value


def mask_secret(value: str | None) -> str | None:
    """'abcdef1234567890' -> '************7890'."""
    if not value:
        return value
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


@dataclass
class ApiKeyValidation:
    valid: bool
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "message": self.message}


def validate_provider_api_key(service: str, key: str | None) -> ApiKeyValidation:
    """Format-only check. No network call is made."""
    try:
        provider = ProviderName(service)
    except ValueError:
        return ApiKeyValidation(False, f"Unknown service '{service}'")
    if not provider.requires_api_key:
        return ApiKeyValidation(False, f"{provider.value} does not use an API key")

    key = (key or "").strip()
    if not key:
        return ApiKeyValidation(False, "API key is required")
    if len(key) < MIN_API_KEY_LENGTH:
        return ApiKeyValidation(
            False, f"API key too short (minimum {MIN_API_KEY_LENGTH} characters)"
        )
    if provider is ProviderName.LASTFM and len(key) != LASTFM_API_KEY_LENGTH:
        return ApiKeyValidation(
            False, f"Last.fm API keys are exactly {LASTFM_API_KEY_LENGTH} characters"
        )
    return ApiKeyValidation(True)


class MetadataSettingsService:
    """Loads and updates the enrichment configuration."""

    def __init__(self, uow_factory: UnitOfWorkFactory, settings: Settings) -> None:
        self._uow = uow_factory
        self._settings = settings

    def defaults(self) -> EnrichmentConfig:
        """Configuration from env/config file only."""
        enrichment = self._settings.enrichment
        return EnrichmentConfig(
            auto_search=AutoSearchSettings(
                enabled=enrichment.auto_search_enabled,
                confidence_threshold=enrichment.confidence_threshold,
                auto_apply=enrichment.auto_apply,
            ),
            auto_enrich_enabled=enrichment.auto_enrich_enabled,
            providers={
                ProviderName.MUSICBRAINZ: ProviderConfig(),
                ProviderName.COVERARTARCHIVE: ProviderConfig(),
                ProviderName.LASTFM: ProviderConfig(api_key=self._settings.lastfm.api_key),
                ProviderName.FANART: ProviderConfig(api_key=self._settings.fanart.api_key),
            },
            provider_retry_attempts=enrichment.provider_retry_attempts,
            provider_timeout=self._settings.http.default_timeout,
        )

    async def load_config(self) -> EnrichmentConfig:
        async with self._uow() as uow:
            stored = await uow.settings.get_all(prefix=KEY_PREFIX)
        return self._overlay(self.defaults(), stored)

    def _stored_bool(self, stored: dict[str, str], key: str, default: bool) -> bool:
        if key not in stored:
            return default
        try:
            return parse_bool(stored[key])
        except ValueError:
            logger.warning(LogMessages.config_invalid(key, stored[key], "true or false"))
            return default

    def _overlay(self, base: EnrichmentConfig, stored: dict[str, str]) -> EnrichmentConfig:
        threshold = base.auto_search.confidence_threshold
        if AUTO_SEARCH_THRESHOLD in stored:
            try:
                threshold = parse_threshold(stored[AUTO_SEARCH_THRESHOLD])
            except ValueError:
                logger.warning(
                    LogMessages.config_invalid(
                        AUTO_SEARCH_THRESHOLD,
                        stored[AUTO_SEARCH_THRESHOLD],
                        "a number between 0 and 1",
                    )
                )

        auto_search = AutoSearchSettings(
            enabled=self._stored_bool(stored, AUTO_SEARCH_ENABLED, base.auto_search.enabled),
            confidence_threshold=threshold,
            auto_apply=self._stored_bool(
                stored, AUTO_SEARCH_AUTO_APPLY, base.auto_search.auto_apply
            ),
        )

        api_keys = {ProviderName.LASTFM: LASTFM_API_KEY, ProviderName.FANART: FANART_API_KEY}
        providers: dict[ProviderName, ProviderConfig] = {}
        for name in ProviderName:
            current = base.provider(name)
            api_key = current.api_key
            if name in api_keys and stored.get(api_keys[name], "").strip():
                api_key = stored[api_keys[name]].strip()
            providers[name] = ProviderConfig(
                enabled=self._stored_bool(
                    stored, f"metadata.{name.value}.enabled", current.enabled
                ),
                api_key=api_key,
            )

        return EnrichmentConfig(
            auto_search=auto_search,
            auto_enrich_enabled=self._stored_bool(
                stored, AUTO_ENRICH_ENABLED, base.auto_enrich_enabled
            ),
            providers=providers,
            provider_retry_attempts=base.provider_retry_attempts,
            provider_timeout=base.provider_timeout,
        )

    async def update_setting(self, key: str, value: Any) -> None:
        """Validate and persist one metadata.* setting."""
        if key not in KNOWN_KEYS:
            raise ValidationError(f"Unknown metadata setting '{key}'")

        raw = str(value).strip() if value is not None else ""
        if key in BOOLEAN_KEYS:
            try:
                normalized = "true" if parse_bool(raw) else "false"
            except ValueError as e:
                raise ValidationError(f"{key} must be true or false") from e
            value_type = "boolean"
        elif key in FLOAT_KEYS:
            try:
                normalized = str(parse_threshold(raw))
            except ValueError as e:
                raise ValidationError(f"{key} must be a number between 0 and 1") from e
            value_type = "float"
        else:
            # Empty string clears the key so the env default applies again
            if raw:
                service = key.split(".")[1]
                check = validate_provider_api_key(service, raw)
                if not check.valid:
                    raise ValidationError(check.message)
            normalized = raw
            value_type = "string"

        async with self._uow() as uow:
            await uow.settings.set(key, normalized, value_type=value_type)
        shown = mask_secret(normalized) if key in SECRET_KEYS else normalized
        logger.info("Metadata setting %s updated to %s", key, shown)

    async def get_public_settings(self) -> dict[str, Any]:
        """Effective settings with API keys masked."""
        config = await self.load_config()
        return {
            "autoEnrichEnabled": config.auto_enrich_enabled,
            "autoSearch": {
                "enabled": config.auto_search.enabled,
                "confidenceThreshold": config.auto_search.confidence_threshold,
                "autoApply": config.auto_search.auto_apply,
            },
            "providers": {
                name.value: {
                    "enabled": config.provider(name).enabled,
                    "configured": config.is_enabled(name),
                    "apiKey": mask_secret(config.provider(name).api_key),
                }
                for name in ProviderName
            },
        }
