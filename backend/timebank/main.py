# backend/timebank/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import AsyncGenerator, Dict

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .core.config import settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .core.exceptions import DomainException, RepositoryException
from .database import SessionLocal
from .middleware.prometheus_middleware import PrometheusMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import admin, bookings, catalog, notifications, reviews, sessions

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(
        f"Environment: {settings.environment}, settlement policy: {settings.settlement_policy}"
    )
    if settings.meeting_provider_url is None:
        logger.info("No meeting provider configured; using generated fallback room links")
    yield
    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    # Routes convert their own domain errors; this catches anything raised in dependencies.
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"message": exc.message, "code": exc.code, "details": exc.details}},
    )


@app.exception_handler(RepositoryException)
async def repository_exception_handler(request: Request, exc: RepositoryException) -> JSONResponse:
    logger.error(f"Unhandled repository error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": {"message": "Database operation failed", "code": "DATABASE_ERROR"}},
    )


# API v1 router; every versioned router is mounted under /api/v1
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings.router, prefix="/bookings")
api_v1.include_router(reviews.router, prefix="/reviews")
api_v1.include_router(notifications.router, prefix="/notifications")
api_v1.include_router(sessions.router, prefix="/sessions")
api_v1.include_router(catalog.router)
api_v1.include_router(admin.router, prefix="/admin")
app.include_router(api_v1)


@app.get("/")
def root() -> Dict[str, str]:
    return {"message": f"Welcome to the {BRAND_NAME} API", "version": API_VERSION}


@app.get("/health")
def health_check() -> Dict[str, str]:
    return {
        "status": "healthy",
        "service": f"{BRAND_NAME.lower()}-core",
        "version": API_VERSION,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


@app.get("/ready")
def ready_probe() -> JSONResponse:
    """Readiness: the database must answer a trivial query."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning(f"Readiness check failed: {exc}")
        return JSONResponse(status_code=503, content={"status": "db_not_ready"})
    finally:
        db.close()
    return JSONResponse(status_code=200, content={"status": "ok"})


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
