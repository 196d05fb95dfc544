"""Main FastAPI application for the Medicare rate reference service"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response as StarletteResponse

from rate_reference.config import settings
from rate_reference.logging_config import configure_logging
from rate_reference.metrics import REQUEST_COUNT, REQUEST_DURATION
from rate_reference.middleware import LoggingMiddleware
from rate_reference.routers import health, rates
from rate_reference.services.lookup import RateLookupService

configure_logging()

logger = structlog.get_logger()

# Rate limiting
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting rate reference service", version=settings.app_version)

    if getattr(app.state, "lookup_service", None) is None:
        app.state.lookup_service = RateLookupService.from_settings()

    yield

    logger.info("Shutting down rate reference service")
    await app.state.lookup_service.close()
    app.state.lookup_service = None


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Medicare benchmark rate lookup for HCPCS/CPT codes",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(LoggingMiddleware)

app.include_router(health.router, tags=["health"])
app.include_router(rates.router, prefix="/rates", tags=["rates"])


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and duration"""
    start_time = time.time()
    response = await call_next(request)

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code
    ).inc()
    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(time.time() - start_time)

    return response


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return StarletteResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Global HTTP exception handler"""
    run_id = getattr(request.state, 'run_id', str(uuid.uuid4()))

    logger.error(
        "HTTP exception",
        run_id=run_id,
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "code": f"HTTP_{exc.status_code}",
            "trace_id": run_id
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    run_id = getattr(request.state, 'run_id', str(uuid.uuid4()))

    logger.error(
        "Unhandled exception",
        run_id=run_id,
        exception=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "trace_id": run_id
        }
    )
