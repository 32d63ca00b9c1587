"""
FloatMap Floats API Router

REST API endpoints exposing the cached float aggregate.

Mount point: /api/v1

Endpoints:
    GET    /floats             — All floats, history/cycles capped for transport
    GET    /floats/{float_id}  — One float with complete history and cycles

Rules:
    - Return 404 for an unknown float id
    - Return 503 if the aggregate could not be built
    - Capping happens on the serialized copy; the cache is never modified
    - Log endpoint name, params, and response time via structlog
"""

import time

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from floatmap.cache.aggregate_cache import (
    AggregateCache,
    AggregateUnavailableError,
    get_aggregate_cache,
    record_to_dict,
)
from floatmap.config import settings

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Floats"])


# ── GET /floats — Bulk view ───────────────────────────────────────────────

@router.get(
    "/floats",
    summary="List all floats",
    response_description="Every float with its latest position and recent history",
)
async def list_floats_endpoint(
    cache: AggregateCache = Depends(get_aggregate_cache),
):
    """
    Return every float. History is limited to the most recent
    API_HISTORY_LIMIT entries and cycles to the last API_CYCLES_LIMIT cycles
    of at most API_CYCLE_POINTS_LIMIT points each.
    """
    start_time = time.time()
    log = logger.bind(endpoint="list_floats")

    try:
        records = await cache.get_all()
    except AggregateUnavailableError as exc:
        log.error("list_floats_error", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to load data",
        )

    payload = [
        record_to_dict(
            record,
            history_limit=settings.API_HISTORY_LIMIT,
            cycles_limit=settings.API_CYCLES_LIMIT,
            cycle_points_limit=settings.API_CYCLE_POINTS_LIMIT,
        )
        for record in records
    ]

    elapsed = round(time.time() - start_time, 3)
    log.info("list_floats_response", result_count=len(payload), elapsed_seconds=elapsed)
    return payload


# ── GET /floats/{float_id} — Single float ─────────────────────────────────

@router.get(
    "/floats/{float_id}",
    summary="Get one float's complete data",
    response_description="Full history and cycles for one float",
)
async def get_float_endpoint(
    float_id: str,
    cache: AggregateCache = Depends(get_aggregate_cache),
):
    """Return one float by platform id with uncapped history and cycles."""
    log = logger.bind(endpoint="get_float", float_id=float_id)

    try:
        record = await cache.get_one(float_id)
    except AggregateUnavailableError as exc:
        log.error("get_float_error", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to load float data",
        )

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Float not found",
        )

    return record_to_dict(record)
