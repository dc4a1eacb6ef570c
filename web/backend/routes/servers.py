"""
Server endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from services.context import AppContext
from services.errors import GenericCode, GenericError
from services.models import Appeal, Server
from web.backend.core.dependencies import get_context, require_user
from web.backend.core.schemas import APIResponse

router = APIRouter()


@router.get("/servers/{server_id}", response_model=Server)
async def get_server(server_id: int, context: AppContext = Depends(get_context)):
    server = await context.listings.get_server(server_id)
    if server is None:
        raise GenericError(GenericCode.NOT_FOUND)
    return server


@router.post("/users/{user_id}/servers/{server_id}/appeal", response_model=APIResponse)
async def appeal_server(
    server_id: int,
    appeal: Appeal,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    """Appeal, certification request or report for a server; gated behind experiments."""
    result = await context.appeals.appeal_server(user_id, server_id, appeal)
    body = APIResponse(done=result.done, reason=result.reason)
    return JSONResponse(status_code=200 if result.done else 400, content=body.model_dump())
