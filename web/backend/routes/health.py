"""
Health routes.

``/ping`` is a liveness probe; ``/health`` adds database, HTTP client, cache
and config status.
"""

from fastapi import APIRouter, Depends

from services.context import AppContext
from web.backend.core.dependencies import get_context
from web.backend.core.schemas import APIResponse, HealthResponse

router = APIRouter()


@router.get("/ping", response_model=APIResponse)
async def ping():
    return APIResponse.ok(reason="pong")


@router.get("/health", response_model=HealthResponse)
async def health(context: AppContext = Depends(get_context)):
    report = await context.health()
    status = "ok" if report["database"].get("status") == "ok" else "degraded"
    return HealthResponse(status=status, data=report)
