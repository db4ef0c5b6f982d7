"""Enrichment Orchestrator - one run per entity, all providers, one merge.

Hey future me - this is the heart of echometa. Read this before touching anything:

    trigger ─► Idle ─► Searching ─► Fetching ─► Merging ─► Completed
                 │    (no MBID +      (all enabled    (priority order,
                 │    auto-search)    providers,      apply or queue
                 │                    concurrently)   per field)
                 └──────────────► Error (infrastructure failure / cancel)

Rules that MUST keep holding:
1. At most one run per (entity_type, entity_id). The key is registered synchronously
   (no await between check and insert), so two triggers in the same loop tick can't
   both get through. The loser gets EnrichmentAlreadyRunningError.
2. Only MusicBrainz-tier providers (MusicBrainz, Cover Art Archive) ever auto-apply, and
   only into EMPTY fields. Last.fm / Fanart.tv proposals always become conflicts.
3. Provider trouble is never fatal. A failed provider gets an error log row and the run
   goes on. Database trouble IS fatal (InfrastructureError -> enrichment:error).
4. Every image is downloaded and validated before it is applied OR queued.
5. Cancellation stops further work. Fields already applied stay applied.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from echometa.application.services.confidence_scorer import (
    ConfidenceScorer,
    meets_threshold,
)
from echometa.application.services.image_validator import ImageValidator
from echometa.application.services.progress_notifier import ProgressNotifier
from echometa.domain.entities import (
    EnrichmentConfig,
    EnrichmentLog,
    EnrichmentLogStatus,
    EnrichmentRun,
    EnrichmentTarget,
    EntityType,
    MetadataConflict,
    MetadataField,
    ProviderName,
    ProviderResult,
    ProviderSearchResult,
    RunPhase,
    metadata_type_for,
)
from echometa.domain.exceptions import (
    EnrichmentAlreadyRunningError,
    EnrichmentError,
    EntityNotFoundError,
    ExternalApiError,
    InfrastructureError,
    OperationTimeoutError,
    ValidationError,
)
from echometa.domain.ports import (
    IImageDownloader,
    IImageStore,
    IMetadataProvider,
    UnitOfWorkFactory,
)
from echometa.infrastructure.observability.log_messages import LogMessages
from echometa.infrastructure.observability.logger_template import log_operation
from echometa.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"

RunKey = tuple[EntityType, str]
_R = TypeVar("_R", ProviderResult, ProviderSearchResult)


def is_empty_value(value: Any) -> bool:
    return value is None or value == "" or value == []


def values_equal(metadata_field: MetadataField, left: Any, right: Any) -> bool:
    """Field-aware equality. Tags compare as case-insensitive sets."""
    if metadata_field is MetadataField.TAGS and left is not None and right is not None:
        return {str(t).lower() for t in left} == {str(t).lower() for t in right}
    return bool(left == right)


def _describe(error: EnrichmentError) -> str:
    return f"{error.code.value}: {error.message}"


@dataclass
class EnrichmentReport:
    """Outcome of one run, returned by run() and used for the completed event."""

    run_id: str
    entity_type: EntityType
    entity_id: str
    entity_name: str = ""
    status: EnrichmentLogStatus = EnrichmentLogStatus.SUCCESS
    fields_updated: list[str] = field(default_factory=list)
    conflicts_queued: int = 0
    failed_providers: list[str] = field(default_factory=list)
    skipped_providers: list[str] = field(default_factory=list)
    failed_fields: dict[str, str] = field(default_factory=dict)
    search_confidence: float | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "entityType": self.entity_type.value,
            "entityId": self.entity_id,
            "entityName": self.entity_name,
            "status": self.status.value,
            "fieldsUpdated": self.fields_updated,
            "conflictsQueued": self.conflicts_queued,
            "failedProviders": self.failed_providers,
            "skippedProviders": self.skipped_providers,
            "failedFields": self.failed_fields,
            "searchConfidence": self.search_confidence,
            "durationMs": self.duration_ms,
        }


@dataclass
class _RunContext:
    """Mutable per-run state. Never shared between runs."""

    run: EnrichmentRun
    target: EnrichmentTarget
    config: EnrichmentConfig
    report: EnrichmentReport
    # (provider, succeeded) per provider attempt, auto-search included
    attempts: list[tuple[ProviderName, bool]] = field(default_factory=list)
    logged_providers: set[ProviderName] = field(default_factory=set)
    expected_providers: list[ProviderName] = field(default_factory=list)
    search_confidence: float | None = None
    progress_current: int = 0
    progress_total: int = 0
    timings: dict[ProviderName, int] = field(default_factory=dict)

    @property
    def entity_label(self) -> str:
        return f"{self.target.entity_type.value} {self.target.entity_id} ({self.target.name})"


class EnrichmentOrchestrator:
    """Runs enrichment for single entities across all enabled providers."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        providers: Sequence[IMetadataProvider],
        config: EnrichmentConfig,
        image_downloader: IImageDownloader,
        image_store: IImageStore,
        image_validator: ImageValidator | None = None,
        scorer: ConfidenceScorer | None = None,
        notifier: ProgressNotifier | None = None,
    ) -> None:
        self._uow = uow_factory
        self._providers: dict[ProviderName, IMetadataProvider] = {
            provider.name: provider for provider in providers
        }
        self._config = config
        self._image_downloader = image_downloader
        self._image_store = image_store
        self._image_validator = image_validator or ImageValidator()
        self._scorer = scorer or ConfidenceScorer()
        self._notifier = notifier or ProgressNotifier()
        self._active: dict[RunKey, EnrichmentRun] = {}
        self._tasks: dict[RunKey, asyncio.Task[Any]] = {}

    # =========================================================================
    # CONFIGURATION & INSPECTION
    # =========================================================================

    @property
    def config(self) -> EnrichmentConfig:
        return self._config

    def reconfigure(self, config: EnrichmentConfig) -> None:
        """Swap the config for runs started from now on."""
        self._config = config
        logger.info(
            "Enrichment reconfigured (providers=%s, threshold=%.2f, auto_apply=%s)",
            [p.value for p in config.enabled_providers()],
            config.auto_search.confidence_threshold,
            config.auto_search.auto_apply,
        )

    def is_running(self, entity_type: EntityType, entity_id: str) -> bool:
        return (entity_type, entity_id) in self._active

    def active_runs(self) -> list[EnrichmentRun]:
        return list(self._active.values())

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    @staticmethod
    def _validate_input(entity_type: EntityType | str, entity_id: str) -> EntityType:
        try:
            parsed = EntityType(entity_type)
        except ValueError as e:
            raise ValidationError(f"Unknown entity type '{entity_type}'") from e
        if not entity_id or not str(entity_id).strip():
            raise ValidationError("entity_id must not be empty")
        return parsed

    def _register(
        self, entity_type: EntityType, entity_id: str, triggered_by: str
    ) -> EnrichmentRun:
        # No await in here - this is what makes rule 1 hold
        key = (entity_type, entity_id)
        if key in self._active:
            raise EnrichmentAlreadyRunningError(entity_type.value, entity_id)
        run = EnrichmentRun(
            entity_type=entity_type, entity_id=entity_id, triggered_by=triggered_by
        )
        self._active[key] = run
        return run

    def _release(self, run: EnrichmentRun) -> None:
        if self._active.get(run.key) is run:
            del self._active[run.key]
        self._tasks.pop(run.key, None)

    async def _load_target(self, run: EnrichmentRun) -> EnrichmentTarget:
        async with self._uow() as uow:
            target = await uow.entities.get_target(run.entity_type, run.entity_id)
        if target is None:
            raise EntityNotFoundError(run.entity_type.value, run.entity_id)
        return target

    async def trigger_enrichment(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        triggered_by: str = "manual",
    ) -> EnrichmentRun:
        """Start a background run and return immediately.

        Raises ValidationError / EntityNotFoundError before any run exists, and
        EnrichmentAlreadyRunningError when the entity is busy.
        """
        parsed_type = self._validate_input(entity_type, entity_id)
        run = self._register(parsed_type, entity_id, triggered_by)
        try:
            target = await self._load_target(run)
        except BaseException:
            self._release(run)
            raise

        task = asyncio.create_task(
            self._execute(run, target), name=f"enrichment:{run.entity_type.value}:{entity_id}"
        )
        self._tasks[run.key] = task
        task.add_done_callback(lambda t, r=run: self._on_task_done(r, t))
        return run

    def _on_task_done(self, run: EnrichmentRun, task: asyncio.Task[Any]) -> None:
        self._release(run)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # Already logged and published by _execute; retrieve it so asyncio stays quiet
            logger.debug("Background enrichment %s ended with %s", run.id, type(error).__name__)

    async def run(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        triggered_by: str = "manual",
    ) -> EnrichmentReport:
        """Run enrichment in the caller's task and return the report."""
        parsed_type = self._validate_input(entity_type, entity_id)
        run = self._register(parsed_type, entity_id, triggered_by)
        current = asyncio.current_task()
        if current is not None:
            self._tasks[run.key] = current
        try:
            target = await self._load_target(run)
            return await self._execute(run, target)
        finally:
            self._release(run)

    async def trigger_auto_enrichment(
        self, entity_type: EntityType | str, entity_id: str
    ) -> EnrichmentRun | None:
        """Post-scan hook. A no-op returning None while auto-enrich is disabled."""
        if not self._config.auto_enrich_enabled:
            logger.debug("Auto-enrichment disabled, skipping %s %s", entity_type, entity_id)
            return None
        return await self.trigger_enrichment(entity_type, entity_id, triggered_by="auto")

    # =========================================================================
    # CANCELLATION
    # =========================================================================

    def cancel(self, entity_type: EntityType, entity_id: str) -> bool:
        task = self._tasks.get((entity_type, entity_id))
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def shutdown(self) -> None:
        """Cancel every background run and wait for them to finish logging."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        current = asyncio.current_task()
        tasks = [task for task in tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d running enrichment(s) on shutdown", len(tasks))

    # =========================================================================
    # RUN
    # =========================================================================

    async def _execute(self, run: EnrichmentRun, target: EnrichmentTarget) -> EnrichmentReport:
        set_correlation_id(run.id)
        config = self._config
        ctx = _RunContext(
            run=run,
            target=target,
            config=config,
            report=EnrichmentReport(
                run_id=run.id,
                entity_type=target.entity_type,
                entity_id=target.entity_id,
                entity_name=target.name,
            ),
        )
        ctx.expected_providers = [
            name for name in config.enabled_providers() if name in self._providers
        ]
        self._notifier.started(run.entity_type, run.entity_id, run.id, target)

        try:
            async with log_operation(
                logger,
                "enrichment.run",
                entity_type=run.entity_type.value,
                entity_id=run.entity_id,
                run_id=run.id,
                triggered_by=run.triggered_by,
            ):
                await self._run_phases(ctx)
        except asyncio.CancelledError:
            await self._abort(ctx, CANCELLED_REASON)
            raise
        except EnrichmentError as e:
            await self._abort(ctx, _describe(e), write_logs=False)
            raise

        ctx.report.status = self._overall_status(ctx)
        ctx.report.duration_ms = run.duration_ms
        self._notifier.completed(
            target,
            run.id,
            fields_updated=ctx.report.fields_updated,
            duration_ms=ctx.report.duration_ms,
            status=ctx.report.status.value,
            conflicts_queued=ctx.report.conflicts_queued,
            failed_providers=ctx.report.failed_providers,
        )
        logger.info(
            LogMessages.enrichment_completed(
                entity=ctx.entity_label,
                status=ctx.report.status.value,
                fields_updated=ctx.report.fields_updated,
                conflicts=ctx.report.conflicts_queued,
                duration_ms=ctx.report.duration_ms,
            )
        )
        return ctx.report

    async def _run_phases(self, ctx: _RunContext) -> None:
        run, target, config = ctx.run, ctx.target, ctx.config
        musicbrainz = self._providers.get(ProviderName.MUSICBRAINZ)
        should_search = (
            target.mbid is None
            and config.auto_search.enabled
            and musicbrainz is not None
            and config.is_enabled(ProviderName.MUSICBRAINZ)
        )

        providers = [self._providers[name] for name in ctx.expected_providers]
        ctx.progress_total = len(providers) + (1 if should_search else 0) + 1

        if should_search and musicbrainz is not None:
            run.advance(RunPhase.SEARCHING)
            await self._auto_search(ctx, musicbrainz)
            self._step(ctx, "searching")

        run.advance(RunPhase.FETCHING)
        results = await asyncio.gather(
            *(self._fetch_with_progress(ctx, provider) for provider in providers)
        )

        run.advance(RunPhase.MERGING)
        self._step(ctx, "merging")
        # gather keeps input order, and providers are already in priority order
        for result in results:
            await self._merge(ctx, result)

        run.complete()

    def _step(self, ctx: _RunContext, step: str) -> None:
        ctx.progress_current += 1
        self._notifier.progress(
            ctx.target, ctx.run.id, step, ctx.progress_current, ctx.progress_total
        )

    async def _abort(self, ctx: _RunContext, reason: str, write_logs: bool = True) -> None:
        ctx.run.fail()
        ctx.report.status = EnrichmentLogStatus.ERROR
        ctx.report.duration_ms = ctx.run.duration_ms
        logger.warning(LogMessages.enrichment_aborted(ctx.entity_label, reason))

        if write_logs:
            # One error row for every provider that never got its own row this run
            pending = [p for p in ctx.expected_providers if p not in ctx.logged_providers]
            try:
                for provider in pending:
                    await self._write_log(
                        ctx, provider, EnrichmentLogStatus.ERROR, [], error_message=reason
                    )
            except InfrastructureError:
                logger.error("Could not record aborted run %s", ctx.run.id, exc_info=True)

        self._notifier.error(
            ctx.run.entity_type, ctx.run.entity_id, ctx.run.id, reason, ctx.target
        )

    @staticmethod
    def _overall_status(ctx: _RunContext) -> EnrichmentLogStatus:
        if not ctx.attempts:
            return EnrichmentLogStatus.SUCCESS
        succeeded = sum(1 for _, ok in ctx.attempts if ok)
        if succeeded == len(ctx.attempts):
            return EnrichmentLogStatus.SUCCESS
        if succeeded == 0:
            return EnrichmentLogStatus.ERROR
        return EnrichmentLogStatus.PARTIAL

    # =========================================================================
    # PROVIDER CALLS
    # =========================================================================

    async def _time_boxed(
        self,
        provider: ProviderName,
        config: EnrichmentConfig,
        call: Callable[[], Awaitable[_R]],
        failure: Callable[[ProviderName, EnrichmentError], _R],
    ) -> _R:
        """One provider call bounded by config.provider_timeout.

        The adapter's in-flight requests are cancelled on expiry and the call
        comes back as a tagged OperationTimeoutError, like any other failure.
        """
        try:
            return await asyncio.wait_for(call(), timeout=config.provider_timeout)
        except TimeoutError:
            timeout_ms = int(config.provider_timeout * 1000)
            logger.warning(
                LogMessages.provider_timeout(provider.value, config.provider_timeout)
            )
            return failure(
                provider,
                OperationTimeoutError(f"{provider.value}.call", timeout_ms, provider.value),
            )

    async def _with_retries(
        self,
        provider: ProviderName,
        config: EnrichmentConfig,
        call: Callable[[], Awaitable[_R]],
        failure: Callable[[ProviderName, EnrichmentError], _R],
    ) -> _R:
        """Retry 429/503 answers up to provider_retry_attempts extra times.

        The ExternalApiClient has already engaged the rate limiter's backoff
        (honouring Retry-After) before handing us the error, so no extra sleep.
        Every attempt gets its own provider_timeout.
        """
        max_attempts = 1 + max(0, config.provider_retry_attempts)
        attempt = 1
        while True:
            result = await self._time_boxed(provider, config, call, failure)
            error = result.error
            if (
                isinstance(error, ExternalApiError)
                and error.is_retryable
                and attempt < max_attempts
            ):
                logger.warning(LogMessages.rate_limited(provider.value, attempt, max_attempts))
                attempt += 1
                continue
            return result

    async def _fetch_with_progress(
        self, ctx: _RunContext, provider: IMetadataProvider
    ) -> ProviderResult:
        result = await self._fetch(ctx, provider)
        self._step(ctx, f"fetched:{provider.name.value}")
        return result

    async def _fetch(self, ctx: _RunContext, provider: IMetadataProvider) -> ProviderResult:
        api_key = ctx.config.provider(provider.name).api_key
        started = time.monotonic()

        async def call() -> ProviderResult:
            try:
                return await provider.fetch(ctx.target, api_key=api_key)
            except Exception as e:
                # Adapters return errors; anything raised is a bug we still must contain
                logger.exception("Provider %s raised instead of returning", provider.name.value)
                return ProviderResult.failure(
                    provider.name, ExternalApiError(provider.name.value, str(e) or type(e).__name__)
                )

        result = await self._with_retries(
            provider.name, ctx.config, call, ProviderResult.failure
        )
        result.run_id = ctx.run.id
        ctx.timings[provider.name] = int((time.monotonic() - started) * 1000)
        return result

    # =========================================================================
    # AUTO-SEARCH
    # =========================================================================

    async def _auto_search(self, ctx: _RunContext, musicbrainz: IMetadataProvider) -> None:
        target, settings = ctx.target, ctx.config.auto_search
        started = time.monotonic()

        search = await self._with_retries(
            ProviderName.MUSICBRAINZ,
            ctx.config,
            lambda: musicbrainz.search_by_name(
                target.entity_type, target.name, target.artist_name
            ),
            ProviderSearchResult.failure,
        )
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if search.error is not None:
            self._record_failure(ctx, ProviderName.MUSICBRAINZ, search.error)
            await self._write_log(
                ctx,
                ProviderName.MUSICBRAINZ,
                EnrichmentLogStatus.ERROR,
                [],
                metadata_type=MetadataField.MBID.category,
                error_message=_describe(search.error),
                processing_time_ms=elapsed_ms,
                mark_logged=False,
            )
            return

        ctx.attempts.append((ProviderName.MUSICBRAINZ, True))
        best = self._scorer.best(target, search.candidates)
        fields_updated: list[str] = []
        if best is None:
            logger.info("No MusicBrainz candidates for %s", ctx.entity_label)
        else:
            ctx.report.search_confidence = best.confidence
            if settings.auto_apply and meets_threshold(
                best.confidence, settings.confidence_threshold
            ):
                ctx.search_confidence = best.confidence
                await self._apply(ctx, MetadataField.MBID, best.external_id)
                fields_updated.append(MetadataField.MBID.value)
                logger.info(
                    "Auto-assigned MBID %s to %s (confidence %.3f)",
                    best.external_id,
                    ctx.entity_label,
                    best.confidence,
                )
            elif await self._is_dismissed(
                ctx, ProviderName.MUSICBRAINZ, MetadataField.MBID, best.external_id
            ):
                logger.debug(
                    "Skipping previously dismissed MBID %s for %s",
                    best.external_id,
                    ctx.entity_label,
                )
            else:
                await self._queue(
                    ctx,
                    ProviderName.MUSICBRAINZ,
                    MetadataField.MBID,
                    best.external_id,
                    confidence=best.confidence,
                )

        await self._write_log(
            ctx,
            ProviderName.MUSICBRAINZ,
            EnrichmentLogStatus.SUCCESS,
            fields_updated,
            metadata_type=MetadataField.MBID.category,
            processing_time_ms=elapsed_ms,
            mark_logged=False,
        )

    # =========================================================================
    # MERGE
    # =========================================================================

    def _record_failure(
        self, ctx: _RunContext, provider: ProviderName, error: EnrichmentError
    ) -> None:
        ctx.attempts.append((provider, False))
        if provider.value not in ctx.report.failed_providers:
            ctx.report.failed_providers.append(provider.value)
        logger.warning(
            LogMessages.provider_failed(provider.value, ctx.entity_label, _describe(error))
        )

    def _may_auto_apply(self, ctx: _RunContext, result: ProviderResult) -> bool:
        if not result.provider.is_trusted:
            return False
        if result.fetched_by_id:
            return True
        return ctx.search_confidence is not None and meets_threshold(
            ctx.search_confidence, ctx.config.auto_search.confidence_threshold
        )

    async def _merge(self, ctx: _RunContext, result: ProviderResult) -> None:
        provider = result.provider
        elapsed_ms = ctx.timings.get(provider, 0)

        if result.skipped:
            ctx.report.skipped_providers.append(provider.value)
            ctx.logged_providers.add(provider)
            logger.debug("%s skipped for %s", provider.value, ctx.entity_label)
            return

        if result.error is not None:
            self._record_failure(ctx, provider, result.error)
            await self._write_log(
                ctx,
                provider,
                EnrichmentLogStatus.ERROR,
                [],
                error_message=_describe(result.error),
                processing_time_ms=elapsed_ms,
            )
            return

        ctx.attempts.append((provider, True))
        trusted = self._may_auto_apply(ctx, result)
        applied: list[str] = []
        failures: list[str] = []
        preview_url: str | None = None

        for metadata_field in MetadataField:
            if metadata_field not in result.fields:
                continue
            value = result.fields[metadata_field]
            current = ctx.target.current(metadata_field)
            if values_equal(metadata_field, value, current):
                continue

            auto_apply = trusted and is_empty_value(current)
            if not auto_apply and await self._is_dismissed(ctx, provider, metadata_field, value):
                logger.debug(
                    "Skipping previously dismissed %s proposal from %s",
                    metadata_field.value,
                    provider.value,
                )
                continue

            validated = None
            if metadata_field.is_image:
                validated = await self._validate_image(ctx, provider, metadata_field, value)
                if validated is None:
                    failures.append(metadata_field.value)
                    continue
                preview_url = preview_url or value

            if auto_apply:
                await self._apply(ctx, metadata_field, value, validated)
                applied.append(metadata_field.value)
            else:
                await self._queue(
                    ctx, provider, metadata_field, value, confidence=result.confidence
                )

        status = EnrichmentLogStatus.PARTIAL if failures else EnrichmentLogStatus.SUCCESS
        error_message = (
            "; ".join(f"{name}: {ctx.report.failed_fields[name]}" for name in failures)
            if failures
            else None
        )
        await self._write_log(
            ctx,
            provider,
            status,
            applied,
            metadata_type=metadata_type_for(set(result.fields)),
            error_message=error_message,
            preview_url=preview_url,
            processing_time_ms=elapsed_ms,
        )

    async def _is_dismissed(
        self,
        ctx: _RunContext,
        provider: ProviderName,
        metadata_field: MetadataField,
        value: Any,
    ) -> bool:
        async with self._uow() as uow:
            return await uow.conflicts.is_dismissed(
                ctx.target.entity_id, metadata_field, provider, value
            )

    async def _validate_image(
        self,
        ctx: _RunContext,
        provider: ProviderName,
        metadata_field: MetadataField,
        url: Any,
    ) -> tuple[bytes, str] | None:
        """Download and validate; returns (content, mime) or None when refused."""
        download = await self._image_downloader.download(provider, str(url))
        validation = await self._image_validator.validate_download(download, metadata_field)
        if validation.error is not None:
            reason = validation.error.reason.value
            ctx.report.failed_fields[metadata_field.value] = reason
            logger.warning(
                LogMessages.image_rejected(provider.value, metadata_field.value, reason, str(url))
            )
            return None
        return validation.content, validation.mime_type

    async def _apply(
        self,
        ctx: _RunContext,
        metadata_field: MetadataField,
        value: Any,
        image: tuple[bytes, str] | None = None,
    ) -> None:
        target = ctx.target
        stored_path = None
        if image is not None:
            content, mime_type = image
            try:
                stored_path = await self._image_store.save(
                    target.entity_type, target.entity_id, metadata_field, content, mime_type
                )
            except OSError as e:
                raise InfrastructureError(f"Image store unavailable: {e}") from e

        async with self._uow() as uow:
            await uow.entities.apply_field(
                target.entity_type, target.entity_id, metadata_field, value, stored_path
            )
        target.values[metadata_field] = value
        if metadata_field.value not in ctx.report.fields_updated:
            ctx.report.fields_updated.append(metadata_field.value)

    async def _queue(
        self,
        ctx: _RunContext,
        provider: ProviderName,
        metadata_field: MetadataField,
        value: Any,
        confidence: float | None = None,
    ) -> None:
        target = ctx.target
        conflict = MetadataConflict.propose(
            entity_type=target.entity_type,
            entity_id=target.entity_id,
            entity_name=target.name,
            provider=provider,
            metadata_field=metadata_field,
            proposed_value=value,
            previous_value=target.current(metadata_field),
            confidence=confidence,
        )
        async with self._uow() as uow:
            await uow.conflicts.upsert_pending(conflict)
        ctx.report.conflicts_queued += 1
        logger.info(
            LogMessages.conflict_queued(
                provider.value, ctx.entity_label, metadata_field.value, confidence
            )
        )

    async def _write_log(
        self,
        ctx: _RunContext,
        provider: ProviderName,
        status: EnrichmentLogStatus,
        fields_updated: list[str],
        metadata_type: str | None = None,
        error_message: str | None = None,
        preview_url: str | None = None,
        processing_time_ms: int = 0,
        mark_logged: bool = True,
    ) -> None:
        target = ctx.target
        log = EnrichmentLog(
            run_id=ctx.run.id,
            entity_id=target.entity_id,
            entity_type=target.entity_type,
            entity_name=target.name,
            provider=provider,
            metadata_type=metadata_type or "none",
            status=status,
            fields_updated=fields_updated,
            error_message=error_message,
            preview_url=preview_url,
            processing_time_ms=processing_time_ms,
        )
        async with self._uow() as uow:
            await uow.logs.add(log)
        if mark_logged:
            ctx.logged_providers.add(provider)

