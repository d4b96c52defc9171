"""
Vehicle catalogue endpoints.

Handlers validate input, call the repository and shape the
`{success, data, ...}` envelope. Store failures are logged with the
operation name and answered with a generic "Failed to ..." message.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from common.config import Settings
from common.errors import RepositoryError, ValidationError
from common.filters import extract_filters
from common.performance import log_performance
from common.repository import VehicleRepository
from common.validation import parse_list_query, parse_vehicle_id, validate_filters
from common.vehicle_spec import FILTER_TYPES, VEHICLE_SPEC

logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(request: Request) -> VehicleRepository:
    repo = getattr(request.app.state, "repository", None)
    if repo is None:
        raise RuntimeError("Vehicle repository is not initialized. Start the app through its lifespan.")
    return repo


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(operation: str, start: float, request: Request, settings: Settings, exc: Exception, message: str, **extra: Any) -> JSONResponse:
    log_performance(
        f"{operation}_ERROR",
        start,
        slow_ms=settings.slow_request_ms,
        error=str(exc),
        ip=_client_ip(request),
        **extra,
    )
    logger.error("Error in %s: %s", operation, exc)
    return JSONResponse(status_code=500, content={"success": False, "message": message})


def _not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "message": message})


@router.get("/data")
def list_vehicles(
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    params = dict(request.query_params)
    query = parse_list_query(params)

    filter_errors = validate_filters(params)
    if filter_errors:
        if settings.filter_validation_policy == "reject":
            raise ValidationError(filter_errors[0])
        logger.warning("Filter validation errors", extra={"errors": filter_errors})

    filters = extract_filters(params)
    try:
        result = repo.list_page(
            filters,
            search=query.search,
            page=query.page,
            limit=query.limit,
            sort_by=query.sortBy,
            sort_order=query.sortOrder,
        )
    except RepositoryError as exc:
        return _failure("getAllData", start, request, settings, exc, "Failed to retrieve data")

    log_performance(
        "getAllData",
        start,
        slow_ms=settings.slow_request_ms,
        records=len(result["data"]),
        totalRecords=result["pagination"]["total"],
        page=result["pagination"]["page"],
        hasFilters=len(filters) > 0,
        hasSearch=bool(query.search),
        filterCount=len(filters),
        ip=_client_ip(request),
    )
    return {"success": True, "data": result["data"], "pagination": result["pagination"]}


@router.get("/data/{vehicle_id}")
def get_vehicle(
    vehicle_id: str,
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    vid = parse_vehicle_id(vehicle_id)
    try:
        car = repo.get(vid)
    except RepositoryError as exc:
        return _failure("getDataById", start, request, settings, exc, "Failed to retrieve car details", id=vehicle_id)

    log_performance("getDataById", start, slow_ms=settings.slow_request_ms, id=vid, found=car is not None, ip=_client_ip(request))
    if car is None:
        return _not_found("Car not found")
    return {"success": True, "data": car}


@router.delete("/data/{vehicle_id}")
def delete_vehicle(
    vehicle_id: str,
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    vid = parse_vehicle_id(vehicle_id)
    try:
        deleted = repo.delete(vid)
    except RepositoryError as exc:
        return _failure("deleteData", start, request, settings, exc, "Failed to delete car", id=vehicle_id)

    log_performance("deleteData", start, slow_ms=settings.slow_request_ms, id=vid, deleted=deleted, ip=_client_ip(request))
    if not deleted:
        return _not_found("Car not found")
    return {"success": True, "message": "Car deleted successfully"}


@router.get("/filters/price/range")
def price_range(
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    try:
        bounds = repo.price_range()
    except RepositoryError as exc:
        return _failure("getPriceRange", start, request, settings, exc, "Failed to retrieve price range")

    log_performance(
        "getPriceRange",
        start,
        slow_ms=settings.slow_request_ms,
        minPrice=bounds["min"],
        maxPrice=bounds["max"],
        ip=_client_ip(request),
    )
    return {"success": True, "data": bounds}


@router.get("/filters/{column}/values")
def filter_values(
    column: str,
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    if not VEHICLE_SPEC.is_base_column(column):
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid column for filtering"})

    try:
        values = repo.distinct_values(column)
    except RepositoryError as exc:
        return _failure("getFilterValues", start, request, settings, exc, "Failed to retrieve filter values", column=column)

    log_performance(
        "getFilterValues",
        start,
        slow_ms=settings.slow_request_ms,
        column=column,
        valueCount=len(values),
        ip=_client_ip(request),
    )
    return {"success": True, "data": values}


@router.get("/schema")
def table_schema(
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    try:
        fields = repo.schema()
    except RepositoryError as exc:
        return _failure("getSchema", start, request, settings, exc, "Failed to retrieve schema")

    log_performance("getSchema", start, slow_ms=settings.slow_request_ms, fieldCount=len(fields), ip=_client_ip(request))
    return {"success": True, "data": fields}


@router.get("/health")
def health_check(
    request: Request,
    repo: VehicleRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    start = time.perf_counter()
    try:
        health = repo.health()
    except RepositoryError as exc:
        log_performance(
            "healthCheck_ERROR",
            start,
            slow_ms=settings.slow_request_ms,
            error=str(exc),
            status="unhealthy",
            ip=_client_ip(request),
        )
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"success": False, "status": "unhealthy", "timestamp": _now_iso()},
        )

    log_performance(
        "healthCheck",
        start,
        slow_ms=settings.slow_request_ms,
        status="healthy",
        recordCount=health["count"],
        ip=_client_ip(request),
    )
    return {"success": True, "status": "healthy", **health, "timestamp": _now_iso()}


@router.get("/docs-index")
def docs_index(request: Request):
    prefix = request.app.state.settings.api_prefix
    return {
        "title": "Electric Cars DataGrid API",
        "version": "1.0.0",
        "endpoints": [
            f"GET {prefix}/data - List cars with filtering, search, pagination",
            f"GET {prefix}/data/{{id}} - Get car by ID",
            f"DELETE {prefix}/data/{{id}} - Delete car by ID",
            f"GET {prefix}/filters/{{column}}/values - Get distinct values for dropdown filters",
            f"GET {prefix}/filters/price/range - Get price range for slider",
            f"GET {prefix}/schema - Get table schema",
            f"GET {prefix}/health - Health check",
        ],
        "filterColumns": [c.value for c in VEHICLE_SPEC.base_columns],
        "filterTypes": FILTER_TYPES,
        "example": f"{prefix}/data?brand_filter_type=equals&brand_filter_value=BMW&search=electric",
    }
