"""Custom exception handlers for the FastAPI application.

Hey future me - management operations RAISE typed EnrichmentErrors, this module is
the one place that turns them into HTTP status codes. The body always carries
`detail` (human message) plus the error's to_dict() fields (`code`, structured
details) so the UI can branch on `code` instead of parsing messages.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from echometa.domain.exceptions import (
    ConflictAlreadyResolvedError,
    EnrichmentAlreadyRunningError,
    EnrichmentError,
    EntityNotFoundError,
    ExternalApiError,
    ImageErrorReason,
    ImageProcessingError,
    InfrastructureError,
    OperationTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, exc: EnrichmentError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, **exc.to_dict()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for every EnrichmentError subclass.

    - ValidationError -> 422
    - EntityNotFoundError -> 404
    - ConflictAlreadyResolvedError, EnrichmentAlreadyRunningError -> 409
    - ImageProcessingError -> 422 (502 when the image could not be downloaded)
    - ExternalApiError -> 502, OperationTimeoutError -> 504
    - InfrastructureError -> 503
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        logger.warning("Validation error at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(EntityNotFoundError)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundError
    ) -> JSONResponse:
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
        )
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(ConflictAlreadyResolvedError)
    async def conflict_resolved_handler(
        request: Request, exc: ConflictAlreadyResolvedError
    ) -> JSONResponse:
        logger.info("Conflict %s already %s", exc.conflict_id, exc.status)
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(EnrichmentAlreadyRunningError)
    async def already_running_handler(
        request: Request, exc: EnrichmentAlreadyRunningError
    ) -> JSONResponse:
        logger.info("Enrichment already running at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(ImageProcessingError)
    async def image_processing_handler(
        request: Request, exc: ImageProcessingError
    ) -> JSONResponse:
        logger.warning("Image rejected at %s: %s", request.url.path, exc.message)
        if exc.reason is ImageErrorReason.DOWNLOAD_FAILED:
            return _error_response(status.HTTP_502_BAD_GATEWAY, exc)
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(ExternalApiError)
    async def external_api_handler(
        request: Request, exc: ExternalApiError
    ) -> JSONResponse:
        logger.warning(
            "Upstream %s failed at %s: %s", exc.provider, request.url.path, exc.message
        )
        return _error_response(status.HTTP_502_BAD_GATEWAY, exc)

    @app.exception_handler(OperationTimeoutError)
    async def timeout_handler(
        request: Request, exc: OperationTimeoutError
    ) -> JSONResponse:
        logger.warning("Timeout at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_504_GATEWAY_TIMEOUT, exc)

    @app.exception_handler(InfrastructureError)
    async def infrastructure_handler(
        request: Request, exc: InfrastructureError
    ) -> JSONResponse:
        logger.error("Storage unavailable at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)
