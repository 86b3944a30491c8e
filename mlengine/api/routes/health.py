"""
Health Check Endpoints
"""

import time

from fastapi import APIRouter

from ...core.engine_manager import get_engine_manager
from ..constants import EndpointPath
from ..types import HealthStatus

router = APIRouter()

# Track server start time
_start_time = time.time()


# [ENDPOINT] GET /api/v1/health - Server health and engine status
@router.get(
    EndpointPath.HEALTH.value,
    response_model=HealthStatus,
    summary="Health Check",
    description="""
    ## Check server health

    ### Response Fields:
    - `status`: "ok" if the server is up
    - `enabled`: false when the engine is disabled by configuration
    - `engines`: number of live pipelines
    - `uptime`: server uptime in seconds
    """,
)
async def health_check() -> HealthStatus:
    manager = get_engine_manager()
    return HealthStatus(
        status="ok",
        enabled=manager.enabled,
        engines=len(manager.list_engines()),
        uptime=time.time() - _start_time,
    )
