"""
Bot pack endpoints.
"""

from fastapi import APIRouter, Depends

from services.context import AppContext
from services.errors import GenericCode, GenericError
from services.models import BotPack
from web.backend.core.dependencies import get_context, require_user
from web.backend.core.schemas import APIResponse, PackCreatedResponse

router = APIRouter()


@router.get("/packs/{pack_id}", response_model=BotPack)
async def get_pack(pack_id: str, context: AppContext = Depends(get_context)):
    pack = await context.store.get_pack(pack_id)
    if pack is None:
        raise GenericError(GenericCode.NOT_FOUND)
    return pack


@router.post("/users/{user_id}/packs", response_model=PackCreatedResponse)
async def add_pack(
    pack: BotPack,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    pack_id = await context.packs.add_pack(user_id, pack)
    return PackCreatedResponse(done=True, id=pack_id)


@router.patch("/users/{user_id}/packs", response_model=APIResponse)
async def edit_pack(
    pack: BotPack,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    await context.packs.edit_pack(user_id, pack)
    return APIResponse.ok()


@router.delete("/users/{user_id}/packs/{pack_id}", response_model=APIResponse)
async def delete_pack(
    pack_id: str,
    user_id: int = Depends(require_user),
    context: AppContext = Depends(get_context),
):
    await context.packs.delete_pack(user_id, pack_id)
    return APIResponse.ok()
