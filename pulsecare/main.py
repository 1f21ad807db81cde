from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid
from pulsecare.core.config import settings
from pulsecare.core.logging import logger
from pulsecare.core.exceptions import (
    ConfigurationError,
    http_exception_handler,
    validation_exception_handler,
    configuration_exception_handler,
    general_exception_handler
)
from pulsecare.api.v1.api import api_router
from pulsecare.services.engine import get_engine

REQUEST_ID_HEADER = "X-Request-ID"

app = FastAPI(
    title=settings.APP_NAME,
    description="Donor eligibility, availability and geographic aggregation engine",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ConfigurationError, configuration_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Read-only service: dashboards only POST snapshots and GET geography
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an id (the caller's, if sent) and log its latency."""
    started = time.perf_counter()
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms:.1f}ms",
        extra={"request_id": request_id}
    )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response

app.include_router(api_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    """Load the geography table and engine configuration before serving."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    try:
        engine = get_engine()
    except ConfigurationError as e:
        logger.error(f"Engine configuration failed: {e}")
        raise
    logger.info(
        f"Geography loaded: {len(engine.index.divisions())} divisions, "
        f"{len(engine.index.districts())} districts"
    )

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutting down")

@app.get("/")
async def root():
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs" if settings.DEBUG else "disabled"
    }

@app.get("/health")
async def health_check():
    """Liveness plus the size of the loaded geography table."""
    engine = get_engine()
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "divisions": len(engine.index.divisions()),
        "districts": len(engine.index.districts()),
    }
