"""
FastAPI application entry point for the portal content backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from portal_backend.config import Settings, get_settings
from portal_backend.errors import PortalError
from portal_backend.geoblock import CountryLocator, geo_block_middleware
from portal_backend.routes import router

logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


def describe_validation_error(exc: RequestValidationError) -> str:
    """Collapse pydantic's error list into a single client-facing message."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    if error.get("type") == "json_invalid":
        return "Invalid JSON body"
    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    if error.get("type") == "missing":
        return f"{field} is required" if field else "Request body is required"
    message = str(error.get("msg", "Invalid request")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning(
            "%s %s rejected: %s", request.method, request.url.path, exc.message
        )
    return _failure(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = describe_validation_error(exc)
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return _failure(400, message)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _failure(500, str(exc) or "Internal server error")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Portal Content Backend (FastAPI)", version="0.1.0")
    app.state.settings = settings

    if settings.geo_block_enabled:
        app.state.geo_locator = CountryLocator(
            settings.geo_lookup_url, settings.geo_lookup_timeout
        )
        app.middleware("http")(geo_block_middleware)

    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
