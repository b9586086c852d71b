from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import envelope
from app.api.deps import current_user_id
from app.database import get_db
from app.schemas.reaction import ReactionRequest, ReactionResponse
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/reactions", tags=["reactions"])


@router.get("/my")
async def my_reactions(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    rows = await providers.reactions.list_for_user(db, user_id, limit)
    return envelope.ok([ReactionResponse.model_validate(r) for r in rows])


@router.get("/{media_type}/{media_id}/counts")
async def reaction_counts(
    media_type: str,
    media_id: str,
    providers: Providers = Depends(get_providers),
):
    return envelope.ok(await providers.reactions.counts(media_type, media_id))


@router.get("/{media_type}/{media_id}/my-reaction")
async def my_reaction(
    media_type: str,
    media_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    reaction = await providers.reactions.get_user_reaction(db, user_id, media_type, media_id)
    if reaction is None:
        return envelope.ok({})
    return envelope.ok(ReactionResponse.model_validate(reaction))


@router.post("/{media_type}/{media_id}")
async def set_reaction(
    media_type: str,
    media_id: str,
    data: ReactionRequest,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    reaction = await providers.reactions.set(db, user_id, media_type, media_id, data.type)
    return envelope.ok(ReactionResponse.model_validate(reaction), "Reaction set successfully")


@router.delete("/{media_type}/{media_id}")
async def remove_reaction(
    media_type: str,
    media_id: str,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.reactions.remove(db, user_id, media_type, media_id)
    return envelope.ok(message="Reaction removed successfully")
