"""
Movie Catalog Backend: Health Check Route
============================================

What:  GET /health for container and load balancer probes.
How:   Pings MongoDB through the application's MovieStore.

Status levels:
    healthy:   store answered the ping (HTTP 200)
    unhealthy: store unreachable (HTTP 503)
"""

import time

from fastapi import APIRouter, Depends, Response

from catalog import __version__
from catalog.database import MovieStore, get_store
from catalog.schemas.movie import HealthResponse

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    store: MovieStore = Depends(get_store),
) -> HealthResponse:
    connected = await store.ping()
    if not connected:
        response.status_code = 503

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
