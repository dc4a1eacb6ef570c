"""
Cached aggregate reads: index, mini-index, search and vanity codes.
"""

from fastapi import APIRouter, Depends, Query

from services.context import AppContext
from services.errors import GenericCode, GenericError
from services.models import Index, MiniIndex, Search, SearchQuery, TargetType, Vanity
from web.backend.core.dependencies import get_context

router = APIRouter()


@router.get("/index", response_model=Index)
async def get_index(
    target_type: TargetType = Query(default=TargetType.BOT),
    context: AppContext = Depends(get_context),
):
    return await context.listings.index(target_type)


@router.get("/mini-index", response_model=MiniIndex)
async def get_mini_index(context: AppContext = Depends(get_context)):
    """Tag and feature vocabularies for the add-bot form."""
    return await context.listings.mini_index()


@router.get("/search", response_model=Search)
async def search(
    q: str = Query(default=""),
    gc_from: int = Query(default=0),
    gc_to: int = Query(default=-1),
    context: AppContext = Depends(get_context),
):
    return await context.listings.search(SearchQuery(q=q, gc_from=gc_from, gc_to=gc_to))


@router.get("/code/{vanity}", response_model=Vanity)
async def resolve_code(vanity: str, context: AppContext = Depends(get_context)):
    resolved = await context.listings.resolve_code(vanity)
    if resolved is None:
        raise GenericError(GenericCode.NOT_FOUND)
    return resolved
