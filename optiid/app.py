"""
Main FastAPI application for the OptiId registry service.

Wires the registry, the allocator and the HTTP routers together:
- Domain: entities, exceptions and the word corpus
- Registry: authoritative domain records on SQLAlchemy
- Allocation: label generation and capability signing
- Routers: HTTP endpoints
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import db_manager
from .dependencies import build_services, set_services
from .domain.exceptions import OptiIdServiceException
from .logging_config import get_logger, setup_logging
from .metrics import metrics_endpoint, track_request_metrics
from .routers import allocation_router, health_router, registry_router

setup_logging(
    log_level=settings.LOG_LEVEL,
    service_name="optiid-service",
    use_json=settings.LOG_JSON,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting OptiId registry service", port=settings.PORT)

    try:
        db_manager.init_db()
        registry, allocation_service = build_services(db_manager)
        registry.initialize()
        set_services(registry, allocation_service)
        logger.info("Registry initialized", admin=registry.owner())
    except Exception as e:
        logger.error("Failed to initialize registry", error=str(e))
        raise

    yield

    logger.info("Shutting down OptiId registry service")
    set_services(None, None)
    db_manager.disconnect()


app = FastAPI(
    title=settings.APP_NAME,
    description="Permissioned name registry with signed label allocation",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Bind a request ID to the log context and echo it back."""
    request_id = request.headers.get("X-Request-ID") or f"req-{uuid.uuid4().hex[:12]}"
    structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def track_metrics(request: Request, call_next):
    """Track Prometheus metrics per route template."""
    start_time = time.time()
    response = await call_next(request)

    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    track_request_metrics(request.method, endpoint, response.status_code, time.time() - start_time)
    return response


app.include_router(allocation_router.router)
app.include_router(registry_router.router)
app.include_router(health_router.router)

app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)


@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "status": "operational",
        "docs": "/api/docs",
        "health": "/health",
    }


@app.exception_handler(OptiIdServiceException)
async def service_exception_handler(request: Request, exc: OptiIdServiceException):
    """Map domain errors onto their HTTP status."""
    if exc.http_status >= 500:
        logger.warning(
            "Request failed",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
            "code": "internal_server_error",
            "retryable": False,
            "details": {},
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("optiid.app:app", host=settings.HOST, port=settings.PORT, log_level="info")
