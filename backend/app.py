"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.responses import error_response
from api.v1 import api_router
from core import AccountError, configure_logging, settings

logger = logging.getLogger(__name__)


async def _account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed: %s", exc.message, extra={"path": request.url.path})
    return error_response(exc.status_code, exc.message)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request",
        errors=jsonable_encoder(exc.errors()),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path}, exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went wrong while processing the request",
    )


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    application = FastAPI(title="VidTube Accounts API")
    application.include_router(api_router)
    application.add_exception_handler(AccountError, _account_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(
        RequestValidationError,
        _request_validation_handler,  # type: ignore[arg-type]
    )
    application.add_exception_handler(Exception, _unhandled_error_handler)

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application
