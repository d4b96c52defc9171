from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.rate_limit import build_limiter, check_rate_limit, rate_limit_exceeded_handler
from api.routes import router as vehicles_router
from common.config import Settings, load_settings
from common.db import create_pool, ensure_schema
from common.errors import ValidationError
from common.log_config import setup_logging
from common.repository import VehicleRepository
from common.vehicle_import import import_vehicles_csv

logger = logging.getLogger(__name__)

SERVICE_NAME = "Electric Cars DataGrid Backend"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting server...")

    # Connectivity or DDL failure here aborts startup.
    pool = create_pool(settings)
    try:
        with pool.connection() as conn:
            ensure_schema(conn)
            if import_vehicles_csv(conn, settings.csv_path):
                logger.info("CSV data imported")
        app.state.repository = VehicleRepository(pool)
        logger.info("Database ready, API mounted at %s", settings.api_prefix or "/")
        yield
    finally:
        app.state.repository = None
        pool.close()
        logger.info("Database connections closed")


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "message": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"success": False, "message": "Endpoint not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Electric Cars DataGrid API", version=SERVICE_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.repository = None
    app.state.limiter = build_limiter(settings)

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", include_in_schema=False)
    def liveness():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }

    app.include_router(
        vehicles_router,
        prefix=settings.api_prefix,
        tags=["vehicles"],
        dependencies=[Depends(check_rate_limit)],
    )
    return app


app = create_app()
