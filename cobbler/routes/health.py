"""
Health check routes (no authentication).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cobbler import __version__
from cobbler.models.api import HealthCheckResponse
from cobbler.store import Store, get_store

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/api/health")
def health_check(store: Store = Depends(get_store)):
    """Report service and store status"""
    healthy = store.ping()
    health = HealthCheckResponse(
        status="healthy" if healthy else "degraded",
        database="connected" if healthy else "unavailable",
        version=__version__,
    )
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"success": healthy, "data": health.model_dump(mode="json", by_alias=True)},
    )
