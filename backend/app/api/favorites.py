from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import envelope
from app.api.deps import current_user_id
from app.database import get_db
from app.schemas.favorite import FavoriteCheck, FavoriteResponse
from app.services.favorites import validate_media_type
from app.services.registry import Providers, get_providers

router = APIRouter(prefix="/api/v1/favorites", tags=["favorites"])


@router.get("")
async def list_favorites(
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    rows = await providers.favorites.list_for_user(db, user_id)
    return envelope.ok(
        [FavoriteResponse.model_validate(r) for r in rows],
        "Favorites retrieved successfully",
    )


@router.post("/{media_id}")
async def add_favorite(
    media_id: str,
    type: str | None = Query(None, description="movie or tv"),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    """Idempotent; metadata is filled in from the catalog when it answers."""
    media_type = validate_media_type(type)
    favorite = await providers.favorites.add(db, user_id, media_id, media_type)
    return envelope.ok(FavoriteResponse.model_validate(favorite), "Added to favorites")


@router.delete("/{media_id}")
async def remove_favorite(
    media_id: str,
    type: str | None = Query(None),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    await providers.favorites.remove(db, user_id, media_id, validate_media_type(type))
    return envelope.ok(message="Removed from favorites")


@router.get("/{media_id}/check")
async def check_favorite(
    media_id: str,
    type: str | None = Query(None),
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    found = await providers.favorites.is_favorite(db, user_id, media_id, validate_media_type(type))
    return envelope.ok(FavoriteCheck(is_favorite=found))
