"""
Bot endpoints: public detail page and the owner-only mutations.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from services.context import AppContext
from services.errors import GenericCode, GenericError
from services.import_adapter import import_sources
from services.models import Appeal, Bot, BotOwner, ImportSource
from web.backend.core.dependencies import get_context, require_user
from web.backend.core.schemas import (
    APIResponse,
    BotSettingsContext,
    BotSettingsResponse,
    ImportRequest,
    ImportSourceList,
)

router = APIRouter()


@router.get("/bots/{bot_id}", response_model=Bot)
async def get_bot(bot_id: int, context: AppContext = Depends(get_context)):
    bot = await context.listings.get_bot(bot_id)
    if bot is None:
        raise GenericError(GenericCode.NOT_FOUND)
    return bot


@router.get("/import-sources", response_model=ImportSourceList)
async def list_import_sources():
    return ImportSourceList(sources=import_sources())


@router.post("/users/{user_id}/bots", response_model=APIResponse)
async def add_bot(
    bot: Bot,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    """Submit a new bot to the moderation queue."""
    result = await context.bots.add_bot(user_id, bot)
    return APIResponse.ok(context=result.context)


@router.patch("/users/{user_id}/bots", response_model=APIResponse)
async def edit_bot(
    bot: Bot,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    result = await context.bots.edit_bot(user_id, bot)
    return APIResponse.ok(context=result.context)


@router.patch("/users/{user_id}/bots/{bot_id}/main-owner", response_model=APIResponse)
async def transfer_ownership(
    bot_id: int,
    owner: BotOwner,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    """Hand main ownership to ``owner``; only the current main owner may call this."""
    result = await context.bots.transfer_ownership(user_id, bot_id, owner)
    return APIResponse.ok(context=result.context)


@router.delete("/users/{user_id}/bots/{bot_id}", response_model=APIResponse)
async def delete_bot(
    bot_id: int,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    result = await context.bots.delete_bot(user_id, bot_id)
    return APIResponse.ok(context=result.context)


@router.post("/users/{user_id}/bots/{bot_id}/import", response_model=APIResponse)
async def import_bot(
    bot_id: int,
    src: ImportSource = Query(...),
    custom_source: str | None = Query(default=None),
    body: ImportRequest | None = None,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    """Import a bot listed elsewhere; Custom sources send their export in ``ext_data``."""
    result = await context.bots.import_bot(
        user_id,
        bot_id,
        src,
        custom_source=custom_source,
        ext_data=body.ext_data if body else None,
    )
    return APIResponse.ok(context=result.context)


@router.post("/users/{user_id}/bots/{bot_id}/appeal", response_model=APIResponse)
async def appeal_bot(
    bot_id: int,
    appeal: Appeal,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    result = await context.appeals.appeal_bot(user_id, bot_id, appeal)
    body = APIResponse(done=result.done, reason=result.reason)
    return JSONResponse(status_code=200 if result.done else 400, content=body.model_dump())


@router.get("/users/{user_id}/bots/{bot_id}/settings", response_model=BotSettingsResponse)
async def get_bot_settings(
    bot_id: int,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    settings = await context.bots.get_settings(user_id, bot_id)
    return BotSettingsResponse(
        bot=settings.bot,
        context=BotSettingsContext(tags=settings.tags, features=settings.features),
    )
