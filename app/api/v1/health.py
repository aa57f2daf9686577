"""Health check endpoint with database connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_context
from app.core.context import AppContext
from app.core.database import check_db_connected
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(ctx: Annotated[AppContext, Depends(get_context)]) -> HealthResponse:
    """
    Return service health status, database connectivity and which relays are configured.
    Used by load balancers and monitoring.
    """
    connected = check_db_connected(ctx.engine)
    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=ctx.settings.APP_ENV,
        database="connected" if connected else "disconnected",
        upstreams={key: proxy.is_configured for key, proxy in ctx.upstreams.items()},
    )
