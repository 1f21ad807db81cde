"""
Engine exceptions and the JSON exception handlers used by the HTTP adapter.

Only configuration problems are raised. Incomplete donor profiles and
unknown geography are reported in-band by the engine, never as errors.
"""
import logging
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class PulseCareError(Exception):
    """Base exception for the donor engine."""
    pass


class ConfigurationError(PulseCareError, ValueError):
    """Raised when a threshold or other engine setting is invalid."""
    pass


class GeographyTableError(ConfigurationError):
    """Raised when the static division/district/upazila table is inconsistent."""
    pass


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    logger.warning(f"Rejected configuration on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
